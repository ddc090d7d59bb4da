import numpy as np
import pytest

from dosr import (
    ProtocolProfile,
    FrameCodec,
    Modulator,
    Synchronizer,
    SyncState,
    Phase,
    NoSignal,
    SyncLost,
    FrameTruncated,
)

from conftest import silence


def transmission(profile, payload, lead=0.25, tail=0.25):
    frame = FrameCodec(profile).encode(payload)
    return np.concatenate([
        silence(profile, lead),
        Modulator(profile).render(frame),
        silence(profile, tail),
    ])


def run(synchronizer, samples, chunk_size=None):
    if chunk_size is None:
        results = synchronizer.push(samples)
    else:
        results = []
        for index in range(0, len(samples), chunk_size):
            results += synchronizer.push(samples[index:index + chunk_size])

    return results + synchronizer.flush()


def payloads(results):
    return [result.payload for result in results if result.ok]


def errors(results):
    return [type(result.error) for result in results if not result.ok]


def test_decode_abc(profile):
    results = run(Synchronizer(profile), transmission(profile, b'ABC'))

    assert len(results) == 1
    assert results[0].payload == b'ABC'


@pytest.mark.parametrize('offset', [0, 333, 2500])
def test_decode_at_any_offset(profile, offset):
    samples = np.concatenate([np.zeros(offset, dtype=np.float32), transmission(profile, b'offset', lead=0, tail=0)])

    assert payloads(run(Synchronizer(profile), samples)) == [b'offset']


@pytest.mark.parametrize('chunk_size', [64, 777, 4096, 10000])
def test_streaming_chunk_size(profile, chunk_size):
    samples = transmission(profile, b'streamed in pieces')

    assert payloads(run(Synchronizer(profile), samples, chunk_size)) == [b'streamed in pieces']


def test_state_returns_to_searching(profile):
    synchronizer = Synchronizer(profile)
    synchronizer.push(transmission(profile, b'ABC'))

    assert synchronizer.state.phase == Phase.SEARCHING
    assert not synchronizer.state.framed
    assert synchronizer.state.raw == b''


def test_step_needs_samples(profile):
    synchronizer = Synchronizer(profile)

    assert synchronizer.step(SyncState()) is None
    assert synchronizer.push(np.zeros(10, dtype=np.float32)) == []


def test_consecutive_transmissions(profile):
    samples = np.concatenate([transmission(profile, b'first'), transmission(profile, b'second')])

    assert payloads(run(Synchronizer(profile), samples)) == [b'first', b'second']


def test_relock_after_lost_sync(profile):
    cut = Modulator(profile).render(FrameCodec(profile).encode(bytes(100)))
    # preamble, marker and 10 frame symbols
    cut = cut[:(profile.preamble_symbols + 11) * profile.symbol_samples]
    samples = np.concatenate([silence(profile, 0.25), cut, silence(profile, 0.5), transmission(profile, b'second')])

    synchronizer = Synchronizer(profile)
    phases = [synchronizer.state.phase]
    results = []

    for index in range(0, len(samples), profile.hop_samples):
        results += synchronizer.push(samples[index:index + profile.hop_samples])
        if synchronizer.state.phase != phases[-1]:
            phases.append(synchronizer.state.phase)

    assert phases == [Phase.SEARCHING, Phase.LOCKED, Phase.SEARCHING, Phase.LOCKED, Phase.SEARCHING]
    assert errors(results) == [SyncLost]
    assert payloads(results) == [b'second']


def test_preamble_without_frame(profile):
    samples = np.concatenate([silence(profile, 0.25), Modulator(profile).preamble(), silence(profile, 1.0)])
    results = run(Synchronizer(profile), samples)

    assert len(results) > 0
    assert set(errors(results)) == {NoSignal}
    assert payloads(results) == []


def test_stream_ends_before_marker(profile):
    synchronizer = Synchronizer(profile)
    synchronizer.push(np.concatenate([silence(profile, 0.1), Modulator(profile).preamble()]))

    assert synchronizer.state.phase == Phase.LOCKED
    assert errors(synchronizer.flush()) == [NoSignal]
    assert synchronizer.state.phase == Phase.SEARCHING


def test_stream_ends_inside_frame(profile):
    samples = Modulator(profile).render(FrameCodec(profile).encode(bytes(100)))
    samples = samples[:(profile.preamble_symbols + 6) * profile.symbol_samples]
    synchronizer = Synchronizer(profile)

    assert synchronizer.push(samples) == []
    assert synchronizer.state.framed
    assert errors(synchronizer.flush()) == [FrameTruncated]


def test_silence_reports_no_signal(profile):
    results = run(Synchronizer(profile), silence(profile, 4.5))

    assert errors(results) == [NoSignal, NoSignal]


def test_parity_repairs_corrupted_symbols(profile):
    payload = b'forward error correction'
    frame = bytearray(FrameCodec(profile).encode(payload))
    # one whole symbol of the payload
    frame[12:15] = b'\xff\xff\xff'
    samples = np.concatenate([silence(profile, 0.2), Modulator(profile).render(bytes(frame)), silence(profile, 0.2)])

    assert payloads(run(Synchronizer(profile), samples)) == [payload]


def test_decode_with_noise(profile):
    rng = np.random.default_rng(7)
    samples = transmission(profile, b'noisy channel')
    samples = samples + rng.normal(0, 0.02, len(samples)).astype(np.float32)

    assert payloads(run(Synchronizer(profile), samples)) == [b'noisy channel']


def test_decode_quiet_signal(profile):
    samples = transmission(profile, b'quiet') * 0.05

    assert payloads(run(Synchronizer(profile), samples)) == [b'quiet']


@pytest.mark.parametrize('profile', [
    ProtocolProfile.from_name('ultrasonic'),
    ProtocolProfile(sample_rate=44100, symbol_samples=3763),
    ProtocolProfile(parity_symbols=0),
    ProtocolProfile(preamble_symbols=8),
])
def test_decode_with_profile(profile):
    assert payloads(run(Synchronizer(profile), transmission(profile, b'profile'))) == [b'profile']


def test_reset_discards_frame(profile):
    samples = Modulator(profile).render(FrameCodec(profile).encode(bytes(100)))
    synchronizer = Synchronizer(profile)
    synchronizer.push(samples[:len(samples) // 2])
    synchronizer.reset()

    assert synchronizer.state == SyncState(window_offset=len(samples) // 2)
    assert synchronizer.flush() == []


def test_decode_bare_render(profile):
    samples = Modulator(profile).render(FrameCodec(profile).encode(b'ABC'))
    synchronizer = Synchronizer(profile)

    assert payloads(synchronizer.push(samples)) == [b'ABC']
    assert synchronizer.flush() == []


def test_decode_bare_render_streamed(profile):
    samples = Modulator(profile).render(FrameCodec(profile).encode(b'no trailing audio'))

    assert payloads(run(Synchronizer(profile), samples, 1000)) == [b'no trailing audio']


def test_decode_max_payload(profile):
    payload = bytes(range(256)) * (profile.max_payload // 256)

    assert len(payload) == profile.max_payload
    assert payloads(run(Synchronizer(profile), transmission(profile, payload))) == [payload]


def test_decode_max_payload_exact_fill():
    # 3 marker + 6 header + 1025 payload + 4 crc + 60 parity = 1098 bytes, 366 symbols
    profile = ProtocolProfile(max_payload=1025)
    payload = bytes(range(5)) * 205
    frame = FrameCodec(profile).encode(payload)

    assert len(frame) == 1098
    assert payloads(run(Synchronizer(profile), Modulator(profile).render(frame))) == [payload]
