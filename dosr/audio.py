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


'''Audio collaborators: sample format conversion, WAV files and sound card access.

Sound card access uses [PyAudio](https://people.csail.mit.edu/hubert/pyaudio/), which is only imported when an *AudioDevice* is created.

PyAudio can be installed with the package extra: `pip install dosr[audio]`
'''

import wave
import logging

import numpy as np


logger = logging.getLogger(__name__)


def to_pcm16(samples):
    '''Convert float samples in [-1, 1] to signed 16 bit samples, clipping out of range values.'''
    samples = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    return np.round(samples * 32767).astype('<i2')

def from_pcm(samples):
    '''Convert samples to float32 in [-1, 1).

    Signed integer samples are scaled by their full range, unsigned 8 bit samples are centered first (WAV convention). Float samples are returned as float32.
    '''
    samples = np.asarray(samples)

    if samples.dtype == np.uint8:
        return ((samples.astype(np.float32) - 128) / 128).astype(np.float32)

    if np.issubdtype(samples.dtype, np.integer):
        scale = float(np.iinfo(samples.dtype).max) + 1
        return (samples.astype(np.float64) / scale).astype(np.float32)

    return samples.astype(np.float32)

def write_wav(path, samples, sample_rate):
    '''Write mono 16 bit PCM WAV file.

    Args:
        path (str): Output file path
        samples (numpy.ndarray): float samples in [-1, 1]
        sample_rate (int): Sample rate in Hz
    '''
    data = to_pcm16(samples)

    with wave.open(str(path), 'wb') as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(int(sample_rate))
        wav.writeframes(data.tobytes())

    logger.debug('Wrote {} samples at {} Hz to {}'.format(len(data), sample_rate, path))

def read_wav(path):
    '''Read mono PCM WAV file.

    Args:
        path (str): Input file path

    Returns:
        tuple: float32 samples and sample rate in Hz

    Raises:
        ValueError: File is not mono, or uses an unsupported sample width
    '''
    dtypes = {1: np.uint8, 2: np.dtype('<i2'), 4: np.dtype('<i4')}

    with wave.open(str(path), 'rb') as wav:
        if wav.getnchannels() != 1:
            raise ValueError('Expected mono WAV file, {} has {} channels'.format(path, wav.getnchannels()))
        if wav.getsampwidth() not in dtypes:
            raise ValueError('Unsupported WAV sample width: {} bytes'.format(wav.getsampwidth()))

        sample_rate = wav.getframerate()
        data = np.frombuffer(wav.readframes(wav.getnframes()), dtype=dtypes[wav.getsampwidth()])

    logger.debug('Read {} samples at {} Hz from {}'.format(len(data), sample_rate, path))
    return from_pcm(data), sample_rate


class AudioDevice:
    '''Play and capture mono float32 audio with PyAudio.

    Attributes:
        sample_rate (int): Sample rate in Hz
        input_device (int or None): PyAudio input device index, or None for the system default
        output_device (int or None): PyAudio output device index, or None for the system default
        chunk_size (int): Samples per capture read
        online (bool): True while *listen* is capturing
    '''
    def __init__(self, sample_rate=48000, input_device=None, output_device=None, chunk_size=1024):
        '''Initialize AudioDevice class instance.

        Args:
            sample_rate (int): Sample rate in Hz, defaults to 48000
            input_device (int): PyAudio input device index, defaults to None
            output_device (int): PyAudio output device index, defaults to None
            chunk_size (int): Samples per capture read, defaults to 1024

        Raises:
            OSError: PyAudio not installed
        '''
        try:
            import pyaudio
        except ImportError as e:
            raise OSError('PyAudio not installed, try: pip install dosr[audio]') from e

        self._pyaudio = pyaudio
        self._audio = pyaudio.PyAudio()
        self.sample_rate = sample_rate
        self.input_device = input_device
        self.output_device = output_device
        self.chunk_size = chunk_size
        self.online = False

    def find_device(self, device_desc, device_type='input'):
        '''Get a device index based on device name text.

        The purpose of this function is to select the correct device even if the connected audio devices change.

        Args:
            device_desc (str): Text to search for in device names (ex. 'USB')
            device_type (str): 'input' to match capture devices or 'output' to match playback devices, defaults to 'input'

        Returns:
            - int: Device index
            - None: No device matching the specified text

        Raises:
            ValueError: Unknown device type
        '''
        device_type = device_type.lower()

        if device_type == 'input':
            channels_key = 'maxInputChannels'
        elif device_type == 'output':
            channels_key = 'maxOutputChannels'
        else:
            raise ValueError('Unknown device type: {}'.format(device_type))

        for index in range(self._audio.get_device_count()):
            info = self._audio.get_device_info_by_index(index)

            if device_desc in info.get('name', '') and info.get(channels_key, 0) > 0:
                return index

    def play(self, samples):
        '''Play samples, blocking until playback completes.

        Args:
            samples (numpy.ndarray): float samples in [-1, 1]
        '''
        stream = self._audio.open(
            format=self._pyaudio.paFloat32,
            channels=1,
            rate=self.sample_rate,
            output=True,
            output_device_index=self.output_device
        )

        try:
            stream.write(np.asarray(samples, dtype=np.float32).tobytes())
            stream.stop_stream()
        finally:
            stream.close()

    def listen(self, callback, duration=None):
        '''Capture audio and pass each chunk to a callback until *stop* is called.

        Args:
            callback (function): Called with each float32 chunk (ex. *dosr.modem.Demodulator.push*)
            duration (float): Stop after this many seconds, defaults to None (until stopped)

        Raises:
            TypeError: Specified callback object is not callable
        '''
        if not callable(callback):
            raise TypeError('Specified callback object is not callable')

        stream = self._audio.open(
            format=self._pyaudio.paFloat32,
            channels=1,
            rate=self.sample_rate,
            input=True,
            input_device_index=self.input_device,
            frames_per_buffer=self.chunk_size
        )

        remaining = None if duration is None else int(duration * self.sample_rate)
        self.online = True

        try:
            while self.online and (remaining is None or remaining > 0):
                data = stream.read(self.chunk_size, exception_on_overflow=False)
                samples = np.frombuffer(data, dtype=np.float32)
                callback(samples)

                if remaining is not None:
                    remaining -= len(samples)
        finally:
            self.online = False
            stream.stop_stream()
            stream.close()

    def stop(self):
        '''Stop capturing.'''
        self.online = False

    def close(self):
        '''Release the PyAudio instance.'''
        self.stop()
        self._audio.terminate()
