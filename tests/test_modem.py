import numpy as np
import pytest

import dosr
from dosr import ConfigError, SyncLost, FrameTruncated
from dosr.audio import to_pcm16

from conftest import silence, results_of


def padded(profile, samples):
    return np.concatenate([silence(profile, 0.2), samples, silence(profile, 0.2)])


def test_send_receive(modem, profile):
    samples = padded(profile, modem.send('hello world'))

    assert dosr.Modem(profile).receive(samples) == [b'hello world']


def test_rx_callbacks(modem, profile):
    text = []
    data = []
    receiver = dosr.Modem(profile)
    receiver.set_rx_callback(text.append)
    receiver.set_rx_callback_bytes(data.append)

    receiver.push(padded(profile, modem.send('café')))
    receiver.finish()

    assert text == ['café']
    assert data == ['café'.encode('utf-8')]


def test_error_callback(modem, profile):
    failures = []
    receiver = dosr.Modem(profile)
    receiver.set_error_callback(failures.append)

    samples = modem.send_bytes(bytes(200))
    receiver.push(samples[:len(samples) // 2])
    receiver.finish()

    assert len(failures) == 1
    assert isinstance(failures[0], FrameTruncated)


def test_callbacks_must_be_callable(modem):
    with pytest.raises(TypeError):
        modem.set_rx_callback('print')
    with pytest.raises(TypeError):
        modem.set_rx_callback_bytes(None)
    with pytest.raises(TypeError):
        modem.set_error_callback(1)
    with pytest.raises(TypeError):
        modem.demodulator.set_rx_callback([])


def test_send_bytes_validation(modem):
    with pytest.raises(TypeError):
        modem.send_bytes('text')
    with pytest.raises(ValueError):
        modem.send_bytes(bytes(modem.MTU + 1))


def test_named_profile():
    modem = dosr.Modem('ultrasonic')

    assert modem.profile.base_frequency == 18000.0
    assert modem.MTU == modem.profile.max_payload

    with pytest.raises(ConfigError):
        dosr.Modem('subsonic')


def test_integer_pcm_input(modem, profile):
    samples = to_pcm16(padded(profile, modem.send('sixteen bits')))

    assert samples.dtype == np.int16
    assert dosr.Modem(profile).receive(samples) == [b'sixteen bits']


def test_demodulator_results(modem, profile):
    received = []
    demodulator = dosr.Demodulator(profile)
    demodulator.set_rx_callback(received.append)
    results = results_of(demodulator, padded(profile, modem.send('result')))

    assert [result.payload for result in results] == [b'result']
    assert received == results


def test_demodulator_sync_lost(modem, profile):
    samples = modem.send_bytes(bytes(100))
    cut = samples[:(profile.preamble_symbols + 11) * profile.symbol_samples]
    results = results_of(dosr.Demodulator(profile), np.concatenate([cut, silence(profile, 0.5)]))

    assert [type(result.error) for result in results] == [SyncLost]


def test_demodulator_reset(modem, profile):
    samples = modem.send('reset')
    demodulator = dosr.Demodulator(profile)
    demodulator.push(samples[:len(samples) // 2])
    demodulator.reset()

    assert demodulator.state.phase == dosr.Phase.SEARCHING
    assert demodulator.finish() == []


def test_demodulator_sample_rate(profile):
    dosr.Demodulator(profile, sample_rate=48000)

    with pytest.raises(ConfigError):
        dosr.Demodulator(profile, sample_rate=44100)


def test_custom_parity_code(profile):
    sender = dosr.Modem(profile, parity_code=dosr.NoParity())
    receiver = dosr.Modem(profile, parity_code=dosr.NoParity())

    assert receiver.receive(padded(profile, sender.send('plain'))) == [b'plain']


def test_receive_without_trailing_silence(modem, profile):
    assert dosr.Modem(profile).receive(modem.send('end of recording')) == [b'end of recording']
