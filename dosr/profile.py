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


'''Protocol profiles.

A profile fixes every parameter of the link. Transmitter and receiver must use the same profile.

Named profiles:

| Name | Base freq | Step | Band | Sample rate | Symbol |
| -------- | -------- | -------- | -------- | -------- | -------- |
| audible | 1875 Hz | 46.875 Hz | 1875 - 6375 Hz | 48 kHz | 4096 samples (85.3 ms) |
| ultrasonic | 18000 Hz | 46.875 Hz | 18000 - 22500 Hz | 48 kHz | 4096 samples (85.3 ms) |
'''

from dataclasses import dataclass

from dosr.errors import ConfigError


# overrides applied to the ProtocolProfile defaults
PROFILES = {
    'audible': {'base_frequency': 1875.0},
    'ultrasonic': {'base_frequency': 18000.0},
}


@dataclass(frozen=True)
class ProtocolProfile:
    '''Immutable link configuration.

    Attributes:
        base_frequency (float): Frequency of chunk 0 nibble 0 in Hz (F0)
        frequency_step (float): Spacing between adjacent tones in Hz (dF)
        sample_rate (int): Sample rate in Hz
        symbol_samples (int): Duration of one symbol in samples
        window_size (int): Spectral analysis window in samples, 0 selects the smallest power of two resolving *frequency_step* / 2
        parity_symbols (int): Reed-Solomon parity bytes per 255 byte block, 0 disables error correction
        preamble_symbols (int): Number of alternating preamble symbols sent before each frame
        amplitude (float): Output peak level, 0 < amplitude <= 1
        max_payload (int): Largest payload in bytes accepted by the frame codec
        chunks (int): Parallel tones per symbol, fixed at 6
        bits_per_chunk (int): Bits carried by each tone, fixed at 4
        lock_confidence (float): Accumulated preamble match score required to lock
        dominance (float): Ratio a chunk's strongest bin must have over the runner-up to count as clean
        noise_floor (float): Fraction of the preamble reference level below which a chunk counts as silent
        max_weak_symbols (int): Consecutive weak symbols that abandon a lock
        sub_windows (int): Analysis windows averaged per received symbol
        no_signal_timeout (float): Seconds searched without lock before *NoSignal* is reported
    '''
    base_frequency: float = 1875.0
    frequency_step: float = 46.875
    sample_rate: int = 48000
    symbol_samples: int = 4096
    window_size: int = 0
    parity_symbols: int = 12
    preamble_symbols: int = 4
    amplitude: float = 0.8
    max_payload: int = 1024
    chunks: int = 6
    bits_per_chunk: int = 4
    lock_confidence: float = 3.0
    dominance: float = 2.0
    noise_floor: float = 0.1
    max_weak_symbols: int = 3
    sub_windows: int = 3
    no_signal_timeout: float = 2.0

    @classmethod
    def from_name(cls, name, **overrides):
        '''Create a profile from a named preset.

        Args:
            name (str): Preset name, see *PROFILES*
            **overrides: Field values replacing the preset values

        Returns:
            dosr.profile.ProtocolProfile: New profile

        Raises:
            ConfigError: Unknown preset name or invalid resulting profile
        '''
        name = name.lower()

        if name not in PROFILES:
            raise ConfigError('Unknown profile: {} (choose from {})'.format(name, ', '.join(PROFILES)))

        fields = dict(PROFILES[name])
        fields.update(overrides)
        return cls(**fields)

    def __post_init__(self):
        if self.chunks != 6 or self.bits_per_chunk != 4:
            raise ConfigError('Symbols are fixed at 6 chunks of 4 bits, got {} chunks of {} bits'.format(self.chunks, self.bits_per_chunk))

        if self.sample_rate <= 0:
            raise ConfigError('Sample rate must be positive, got {}'.format(self.sample_rate))
        if self.symbol_samples <= 0:
            raise ConfigError('Symbol duration must be positive, got {} samples'.format(self.symbol_samples))
        if self.base_frequency <= 0 or self.frequency_step <= 0:
            raise ConfigError('Base frequency and frequency step must be positive')

        if self.window_size == 0:
            window_size = 1
            while self.sample_rate / window_size > self.frequency_step / 2:
                window_size *= 2
            # frozen dataclass
            object.__setattr__(self, 'window_size', window_size)
        elif self.window_size < 0:
            raise ConfigError('Window size must be positive, got {}'.format(self.window_size))

        if self.bin_width > self.frequency_step / 2 + 1e-9:
            raise ConfigError('Window of {} samples at {} Hz gives {:.3f} Hz bins, cannot resolve a {} Hz step'.format(
                self.window_size, self.sample_rate, self.bin_width, self.frequency_step))

        if self.band_end > self.sample_rate / 2:
            raise ConfigError('Tone band ends at {} Hz, above the Nyquist frequency of {} Hz'.format(self.band_end, self.sample_rate / 2))

        if self.symbol_samples < self.window_size + 2 * self.ramp_samples:
            raise ConfigError('Symbol of {} samples cannot hold a {} sample analysis window'.format(self.symbol_samples, self.window_size))

        if not 0 <= self.parity_symbols <= 128:
            raise ConfigError('Parity symbols must be between 0 and 128, got {}'.format(self.parity_symbols))
        if self.preamble_symbols < 2:
            raise ConfigError('At least 2 preamble symbols are required, got {}'.format(self.preamble_symbols))
        if not 0 < self.amplitude <= 1:
            raise ConfigError('Amplitude must be in (0, 1], got {}'.format(self.amplitude))
        if not 0 <= self.max_payload <= 0xFFFF:
            raise ConfigError('Maximum payload must fit a 16 bit length, got {}'.format(self.max_payload))

        if self.lock_confidence <= 0 or self.dominance < 1 or self.noise_floor < 0:
            raise ConfigError('Invalid receiver thresholds')
        if self.max_weak_symbols < 1 or self.sub_windows < 1 or self.no_signal_timeout <= 0:
            raise ConfigError('Invalid receiver limits')

    @property
    def tones_per_chunk(self):
        '''int: Number of tones available to each chunk (16).'''
        return 2 ** self.bits_per_chunk

    @property
    def band_end(self):
        '''float: Upper edge of the tone band in Hz.'''
        return self.base_frequency + self.chunks * self.tones_per_chunk * self.frequency_step

    @property
    def bin_width(self):
        '''float: Spectral resolution of the analysis window in Hz.'''
        return self.sample_rate / self.window_size

    @property
    def hop_samples(self):
        '''int: Search hop size, a quarter symbol.'''
        return self.symbol_samples // 4

    @property
    def ramp_samples(self):
        '''int: Length of the fade in and fade out applied to each symbol.'''
        return self.symbol_samples // 16

    @property
    def symbol_duration(self):
        '''float: Symbol duration in seconds.'''
        return self.symbol_samples / self.sample_rate

    @property
    def preamble_samples(self):
        '''int: Duration of the preamble in samples.'''
        return self.preamble_symbols * self.symbol_samples

    @property
    def no_signal_samples(self):
        '''int: Samples searched without lock before *NoSignal* is reported.'''
        return int(self.no_signal_timeout * self.sample_rate)
