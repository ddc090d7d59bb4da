import numpy as np
import pytest

from dosr.__main__ import main
from dosr.audio import read_wav, write_wav


def test_encode_decode(tmp_path, capsys):
    path = tmp_path / 'message.wav'

    assert main(['encode', 'hello over sound', str(path)]) == 0
    assert main(['decode', str(path)]) == 0
    assert capsys.readouterr().out == 'hello over sound\n'


def test_encode_options(tmp_path):
    path = tmp_path / 'message.wav'

    assert main(['--duration-ms', '100', '--parity', '0', 'encode', '--silence-ms', '0', 'ABC', str(path)]) == 0

    samples, sample_rate = read_wav(path)
    # preamble plus 3 marker, 6 header, 3 payload and 4 checksum bytes
    assert sample_rate == 48000
    assert len(samples) == (4 + 6) * 4800


def test_decode_nothing(tmp_path, capsys):
    path = tmp_path / 'silence.wav'
    write_wav(path, np.zeros(48000, dtype=np.float32), 48000)

    assert main(['decode', str(path)]) == 1
    assert capsys.readouterr().out == ''


def test_decode_other_sample_rate(tmp_path, capsys):
    path = tmp_path / 'message.wav'

    assert main(['--sample-rate', '44100', 'encode', 'resampled', str(path)]) == 0
    assert read_wav(path)[1] == 44100
    assert main(['decode', str(path)]) == 0
    assert capsys.readouterr().out == 'resampled\n'


def test_decode_rate_mismatch(tmp_path, capsys):
    path = tmp_path / 'message.wav'
    main(['encode', 'mismatch', str(path)])

    assert main(['--sample-rate', '44100', 'decode', str(path)]) == 2
    assert 'resample' in capsys.readouterr().err


def test_invalid_profile_options(tmp_path, capsys):
    assert main(['--parity', '300', 'encode', 'x', str(tmp_path / 'x.wav')]) == 2
    assert 'error' in capsys.readouterr().err

    with pytest.raises(SystemExit):
        main(['--profile', 'subsonic', 'encode', 'x', str(tmp_path / 'x.wav')])


def test_verbose_timing(tmp_path, capsys):
    path = tmp_path / 'message.wav'
    main(['-v', 'encode', 'timed', str(path)])
    main(['-v', 'decode', str(path)])
    captured = capsys.readouterr()

    assert 'Encoding time' in captured.err
    assert 'Decoding time' in captured.err
    assert captured.out == 'timed\n'
