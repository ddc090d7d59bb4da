# MIT License
# 
# Copyright (c) 2022-2023 Simply Equipped
# 
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
# 
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
# 
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

__docformat__ = 'google'


'''Multi-tone FSK modulation and spectral analysis.

Each symbol carries 3 bytes as 6 nibbles, one per chunk, sent as 6 simultaneous tones (see *dosr.tones*). A transmission is a preamble of alternating *PREAMBLE_PATTERNS* symbols followed by the frame symbols, back to back.
'''

import numpy as np

from dosr.errors import InvalidWindowSize
from dosr.profile import ProtocolProfile
from dosr.tones import ToneTable


# preamble symbols alternate between these nibble patterns
PREAMBLE_PATTERNS = (
    (0, 15, 0, 15, 0, 15),
    (15, 0, 15, 0, 15, 0),
)


def bytes_to_nibbles(data):
    '''Split bytes into nibbles, most significant nibble first.'''
    nibbles = []

    for byte in data:
        nibbles.append(byte >> 4)
        nibbles.append(byte & 0x0F)

    return nibbles

def nibbles_to_bytes(nibbles):
    '''Join pairs of nibbles into bytes, most significant nibble first.'''
    return bytes((int(nibbles[i]) << 4) | int(nibbles[i + 1]) for i in range(0, len(nibbles) - 1, 2))


class Modulator:
    '''Synthesize audio for frames.

    Attributes:
        profile (dosr.profile.ProtocolProfile): Link profile
        tones (dosr.tones.ToneTable): Tone assignment
    '''
    def __init__(self, profile=None, tone_table=None):
        self.profile = profile or ProtocolProfile()
        self.tones = tone_table or ToneTable(self.profile)

        self._time = np.arange(self.profile.symbol_samples) / self.profile.sample_rate
        self._envelope = _envelope(self.profile.symbol_samples, self.profile.ramp_samples)
        # 6 tones in phase never exceed the configured peak
        self._gain = self.profile.amplitude / self.profile.chunks

    def symbol(self, nibbles):
        '''Synthesize one symbol.

        Args:
            nibbles (list): One nibble value per chunk

        Returns:
            numpy.ndarray: float32 samples, *profile.symbol_samples* long
        '''
        frequencies = self.tones.frequencies[np.arange(self.profile.chunks), np.asarray(nibbles, dtype=int)]
        waveform = np.sin(2 * np.pi * np.outer(frequencies, self._time)).sum(axis=0)
        return (waveform * self._envelope * self._gain).astype(np.float32)

    def preamble(self):
        '''Synthesize the preamble.

        Returns:
            numpy.ndarray: float32 samples, *profile.preamble_samples* long
        '''
        return np.concatenate([
            self.symbol(PREAMBLE_PATTERNS[index % len(PREAMBLE_PATTERNS)])
            for index in range(self.profile.preamble_symbols)
        ])

    def modulate(self, data):
        '''Generate symbol blocks for frame bytes, preamble first.

        Data is zero padded to a multiple of 3 bytes.

        Args:
            data (bytes): Encoded frame (see *dosr.frame.FrameCodec.encode*)

        Yields:
            numpy.ndarray: float32 samples of one symbol
        '''
        data = bytes(data)
        data += bytes(-len(data) % 3)

        for index in range(self.profile.preamble_symbols):
            yield self.symbol(PREAMBLE_PATTERNS[index % len(PREAMBLE_PATTERNS)])

        for index in range(0, len(data), 3):
            yield self.symbol(bytes_to_nibbles(data[index:index + 3]))

    def render(self, data):
        '''Synthesize a complete transmission.

        Args:
            data (bytes): Encoded frame

        Returns:
            numpy.ndarray: float32 samples, preamble plus *ceil(len(data) / 3)* symbols
        '''
        return np.concatenate(list(self.modulate(data)))


class SpectralAnalyzer:
    '''Hann windowed magnitude spectrum over the tone band.

    Attributes:
        window_size (int): Required input length in samples
        first_bin (int): FFT bin index of the first returned magnitude
        last_bin (int): FFT bin index after the last returned magnitude
    '''
    def __init__(self, profile=None):
        profile = profile or ProtocolProfile()
        self.window_size = profile.window_size
        self.first_bin = int(np.floor(profile.base_frequency / profile.bin_width))
        self.last_bin = int(np.ceil(profile.band_end / profile.bin_width))
        self._window = np.hanning(self.window_size)

    def analyze(self, samples):
        '''Compute band magnitudes for one analysis window.

        Args:
            samples (numpy.ndarray): Exactly *window_size* samples

        Returns:
            numpy.ndarray: Magnitudes of FFT bins *first_bin* to *last_bin - 1*

        Raises:
            InvalidWindowSize: Input length does not match *window_size*
        '''
        samples = np.asarray(samples, dtype=np.float64)

        if samples.shape != (self.window_size,):
            raise InvalidWindowSize('Expected {} samples, got {}'.format(self.window_size, samples.shape))

        spectrum = np.abs(np.fft.rfft(samples * self._window))
        return spectrum[self.first_bin:self.last_bin]


def _envelope(length, ramp):
    envelope = np.ones(length)

    if ramp > 0:
        # raised cosine fade in and out
        fade = 0.5 - 0.5 * np.cos(np.pi * (np.arange(ramp) + 0.5) / ramp)
        envelope[:ramp] = fade
        envelope[-ramp:] = fade[::-1]

    return envelope
