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


'''Mapping between (chunk, nibble) pairs and tone frequencies.

Tone *chunk * 16 + nibble* sits at *F0 + (chunk * 16 + nibble) * dF*, so the 96 tones of a profile are distinct and evenly spaced.
'''

import numpy as np


class ToneTable:
    '''Tone assignment for a protocol profile.

    Attributes:
        profile (dosr.profile.ProtocolProfile): Profile the table was built for
        frequencies (numpy.ndarray): 6 x 16 array of tone frequencies in Hz
        bins (numpy.ndarray): 6 x 16 array of analysis bin indices, one per tone
    '''
    def __init__(self, profile):
        self.profile = profile
        slots = np.arange(profile.chunks * profile.tones_per_chunk).reshape(profile.chunks, profile.tones_per_chunk)
        self.frequencies = profile.base_frequency + slots * profile.frequency_step
        self.bins = np.rint(self.frequencies / profile.bin_width).astype(int)

    def frequency_for(self, chunk, nibble):
        '''Get the tone frequency for a nibble value on a chunk.

        Args:
            chunk (int): Chunk index, 0 - 5
            nibble (int): Nibble value, 0 - 15

        Returns:
            float: Frequency in Hz

        Raises:
            ValueError: Chunk index or nibble value out of range
        '''
        if not 0 <= chunk < self.profile.chunks:
            raise ValueError('Chunk index out of range: {}'.format(chunk))
        if not 0 <= nibble < self.profile.tones_per_chunk:
            raise ValueError('Nibble value out of range: {}'.format(nibble))

        return self.profile.base_frequency + (chunk * self.profile.tones_per_chunk + nibble) * self.profile.frequency_step

    def bin_index(self, frequency):
        '''Get the analysis bin containing a frequency.'''
        return int(round(frequency / self.profile.bin_width))

    def nibble_for(self, chunk, bin_index):
        '''Get the nibble value a chunk's tone in the given analysis bin carries.

        Args:
            chunk (int): Chunk index, 0 - 5
            bin_index (int): Analysis bin index (see *bin_index*)

        Returns:
            int: Nibble value, 0 - 15

        Raises:
            ValueError: Bin is outside of the chunk's tone range
        '''
        slot = int(round((bin_index * self.profile.bin_width - self.profile.base_frequency) / self.profile.frequency_step))
        nibble = slot - chunk * self.profile.tones_per_chunk

        if not 0 <= nibble < self.profile.tones_per_chunk:
            raise ValueError('Bin {} does not belong to chunk {}'.format(bin_index, chunk))

        return nibble
