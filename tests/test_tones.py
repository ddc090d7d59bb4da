import pytest

from dosr import ProtocolProfile, ToneTable


@pytest.mark.parametrize('name', ['audible', 'ultrasonic'])
def test_every_tone_maps_back(name):
    profile = ProtocolProfile.from_name(name)
    table = ToneTable(profile)

    for chunk in range(6):
        for nibble in range(16):
            frequency = table.frequency_for(chunk, nibble)
            assert frequency == pytest.approx(profile.base_frequency + (chunk * 16 + nibble) * profile.frequency_step)
            assert table.nibble_for(chunk, table.bin_index(frequency)) == nibble


def test_tones_are_distinct_and_in_band(profile):
    table = ToneTable(profile)

    assert table.frequencies.shape == (6, 16)
    assert len(set(table.bins.ravel())) == 96
    assert table.frequencies.min() == profile.base_frequency
    assert table.frequencies.max() < profile.band_end


def test_known_frequencies(profile):
    table = ToneTable(profile)

    assert table.frequency_for(0, 0) == 1875.0
    assert table.frequency_for(0, 1) == 1921.875
    assert table.frequency_for(1, 0) == 1875.0 + 16 * 46.875
    assert table.bin_index(1875.0) == 80


def test_out_of_range(profile):
    table = ToneTable(profile)

    with pytest.raises(ValueError):
        table.frequency_for(6, 0)
    with pytest.raises(ValueError):
        table.frequency_for(0, 16)
    with pytest.raises(ValueError):
        # chunk 1 tone
        table.nibble_for(0, table.bin_index(table.frequency_for(1, 3)))
