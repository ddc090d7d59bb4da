import numpy as np
import pytest

from dosr import Modulator, SpectralAnalyzer, ToneTable, ProtocolProfile, InvalidWindowSize
from dosr.fsk import PREAMBLE_PATTERNS, bytes_to_nibbles, nibbles_to_bytes


def test_nibble_order():
    assert bytes_to_nibbles(b'\xab\x01') == [0xA, 0xB, 0x0, 0x1]
    assert nibbles_to_bytes([0xA, 0xB, 0x0, 0x1]) == b'\xab\x01'


@pytest.mark.parametrize('length', [0, 1, 3, 4, 30])
def test_render_length(profile, length):
    samples = Modulator(profile).render(bytes(range(length)))
    symbols = profile.preamble_symbols + -(-length // 3)

    assert samples.dtype == np.float32
    assert len(samples) == symbols * profile.symbol_samples


def test_modulate_yields_symbols(profile):
    blocks = list(Modulator(profile).modulate(b'ABCDEF'))

    assert len(blocks) == profile.preamble_symbols + 2
    assert all(len(block) == profile.symbol_samples for block in blocks)


def test_output_level(profile):
    samples = Modulator(profile).render(bytes(range(0, 256, 7)))

    assert np.max(np.abs(samples)) <= profile.amplitude
    # faded in and out
    assert abs(samples[0]) < 0.01


def test_preamble_alternates(profile):
    modulator = Modulator(profile)
    preamble = modulator.preamble()

    assert len(preamble) == profile.preamble_samples
    np.testing.assert_allclose(preamble[:profile.symbol_samples], modulator.symbol(PREAMBLE_PATTERNS[0]))
    np.testing.assert_allclose(preamble[profile.symbol_samples:2 * profile.symbol_samples], modulator.symbol(PREAMBLE_PATTERNS[1]))


@pytest.mark.parametrize('name', ['audible', 'ultrasonic'])
def test_symbol_tones_are_resolved(name):
    profile = ProtocolProfile.from_name(name)
    table = ToneTable(profile)
    analyzer = SpectralAnalyzer(profile)
    nibbles = [0, 15, 7, 8, 1, 14]

    symbol = Modulator(profile, table).symbol(nibbles)
    start = (profile.symbol_samples - profile.window_size) // 2
    magnitudes = analyzer.analyze(symbol[start:start + profile.window_size])
    grid = magnitudes[table.bins - analyzer.first_bin]

    assert list(np.argmax(grid, axis=1)) == nibbles

    for chunk, nibble in enumerate(nibbles):
        others = np.delete(grid[chunk], nibble)
        assert grid[chunk, nibble] > 10 * others.max()


def test_analyzer_band(profile):
    analyzer = SpectralAnalyzer(profile)
    magnitudes = analyzer.analyze(np.zeros(profile.window_size))

    assert analyzer.first_bin == 80
    assert len(magnitudes) == analyzer.last_bin - analyzer.first_bin
    assert not magnitudes.any()


def test_analyzer_rejects_wrong_window(profile):
    analyzer = SpectralAnalyzer(profile)

    with pytest.raises(InvalidWindowSize):
        analyzer.analyze(np.zeros(profile.window_size - 1))
    with pytest.raises(ValueError):
        analyzer.analyze(np.zeros((2, profile.window_size)))
