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


'''Data over sound transceiver.

Transmit: payload bytes -> frame codec -> modulator -> samples.

Receive: samples -> synchronizer -> frame codec -> payload bytes or failure.

All processing happens synchronously inside the calling thread. An instance must only be used from one thread at a time, use two instances for concurrent transmit and receive.

Example:

```
import dosr

modem = dosr.Modem()
samples = modem.send('hello')

def rx_callback(text):
    print('Packet received: ' + text)

receiver = dosr.Modem()
receiver.set_rx_callback(rx_callback)
receiver.push(samples)
receiver.finish()
```
'''

import logging

from dosr.audio import from_pcm
from dosr.errors import ConfigError, NoSignal
from dosr.frame import FrameCodec
from dosr.fsk import Modulator
from dosr.profile import ProtocolProfile
from dosr.sync import Synchronizer


logger = logging.getLogger(__name__)


class Demodulator:
    '''Streaming receiver.

    Samples are pushed in chunks of any size. Each completed frame attempt produces a *dosr.frame.Result*, returned from *push* / *finish* and passed to the rx callback.

    Attributes:
        profile (dosr.profile.ProtocolProfile): Link profile
        codec (dosr.frame.FrameCodec): Frame codec
        synchronizer (dosr.sync.Synchronizer): Symbol synchronizer
    '''
    def __init__(self, profile=None, sample_rate=None, parity_code=None):
        '''Initialize Demodulator class instance.

        Args:
            profile (dosr.profile.ProtocolProfile): Link profile, defaults to *ProtocolProfile()*
            sample_rate (int): Sample rate of the pushed audio, defaults to None (assume the profile rate)
            parity_code (dosr.frame.ParityCode): Parity code, defaults to the profile's Reed-Solomon code

        Raises:
            ConfigError: *sample_rate* does not match the profile
        '''
        self.profile = profile or ProtocolProfile()

        if sample_rate is not None and sample_rate != self.profile.sample_rate:
            raise ConfigError('Audio at {} Hz cannot be decoded with a {} Hz profile, resample first'.format(sample_rate, self.profile.sample_rate))

        self.codec = FrameCodec(self.profile, parity_code)
        self.synchronizer = Synchronizer(self.profile, self.codec)
        self._rx_callback = None

    @property
    def state(self):
        '''dosr.sync.SyncState: Current synchronizer state.'''
        return self.synchronizer.state

    def set_rx_callback(self, callback):
        '''Set frame result callback function.

        Callback function signature:
            function(result) where *result* is type *dosr.frame.Result*

        Args:
            callback (function): Function to call when a frame attempt completes

        Raises:
            TypeError: Specified callback object is not callable
        '''
        if callable(callback):
            self._rx_callback = callback
        else:
            raise TypeError('Specified callback object is not callable')

    def push(self, samples):
        '''Process a chunk of samples.

        Args:
            samples (numpy.ndarray): float samples in [-1, 1], or signed integer PCM samples

        Returns:
            list: *dosr.frame.Result* for each frame attempt completed by this chunk
        '''
        results = self.synchronizer.push(from_pcm(samples))

        for result in results:
            self._process_result(result)

        return results

    def finish(self):
        '''Signal end of stream, reporting a frame in progress.

        Returns:
            list: *dosr.frame.Result* for the interrupted attempt, if any
        '''
        results = self.synchronizer.flush()

        for result in results:
            self._process_result(result)

        return results

    def reset(self):
        '''Discard buffered samples and any frame in progress.'''
        self.synchronizer.reset()

    def _process_result(self, result):
        if result.ok:
            logger.info('RX: {} bytes'.format(len(result.payload)))
        elif isinstance(result.error, NoSignal):
            logger.debug('RX: {}'.format(result.error))
        else:
            logger.warning('RX failed, {}: {}'.format(type(result.error).__name__, result.error))

        if self._rx_callback is not None:
            self._rx_callback(result)


class Modem:
    '''Create and use a data over sound transceiver.

    Attributes:
        profile (dosr.profile.ProtocolProfile): Link profile shared by transmitter and receiver
        codec (dosr.frame.FrameCodec): Frame codec used to transmit
        modulator (dosr.fsk.Modulator): Transmitter
        demodulator (dosr.modem.Demodulator): Receiver
        MTU (int): Maximum size of payload to be transmitted or received
    '''
    def __init__(self, profile=None, parity_code=None):
        '''Initialize Modem class instance.

        Args:
            profile (dosr.profile.ProtocolProfile or str): Link profile or profile name (see *dosr.profile.PROFILES*), defaults to *ProtocolProfile()*
            parity_code (dosr.frame.ParityCode): Parity code, defaults to the profile's Reed-Solomon code

        Raises:
            ConfigError: Invalid profile
        '''
        if isinstance(profile, str):
            profile = ProtocolProfile.from_name(profile)

        self.profile = profile or ProtocolProfile()
        self.codec = FrameCodec(self.profile, parity_code)
        self.modulator = Modulator(self.profile)
        self.demodulator = Demodulator(self.profile, parity_code=parity_code)
        self.demodulator.set_rx_callback(self._process_rx_callback)
        self.MTU = self.profile.max_payload
        self._rx_callback = None
        self._rx_callback_bytes = None
        self._error_callback = None

    def set_rx_callback(self, callback):
        '''Set incoming packet callback function.

        Callback function signature:
            function(data) where *data* is type *str*

        Args:
            callback (function): Function to call when a packet is received

        Raises:
            TypeError: Specified callback object is not callable
        '''
        if callable(callback):
            self._rx_callback = callback
        else:
            raise TypeError('Specified callback object is not callable')

    def set_rx_callback_bytes(self, callback):
        '''Set incoming packet bytes callback function.

        Callback function signature:
            function(data) where *data* is type *bytes*

        Args:
            callback (function): Function to call when a packet is received

        Raises:
            TypeError: Specified callback object is not callable
        '''
        if callable(callback):
            self._rx_callback_bytes = callback
        else:
            raise TypeError('Specified callback object is not callable')

    def set_error_callback(self, callback):
        '''Set failed reception callback function.

        Callback function signature:
            function(error) where *error* is type *dosr.errors.LinkError*

        Args:
            callback (function): Function to call when a frame attempt fails

        Raises:
            TypeError: Specified callback object is not callable
        '''
        if callable(callback):
            self._error_callback = callback
        else:
            raise TypeError('Specified callback object is not callable')

    def send(self, data):
        '''Modulate a string.

        Data is utf-8 encoded to bytes prior to framing.

        Args:
            data (str): data to send

        Returns:
            numpy.ndarray: float32 samples at the profile sample rate
        '''
        return self.send_bytes(data.encode('utf-8'))

    def send_bytes(self, data):
        '''Modulate bytes.

        Args:
            data (bytes): data to send

        Returns:
            numpy.ndarray: float32 samples at the profile sample rate

        Raises:
            TypeError: specified data is not type bytes
            ValueError: specified data is longer than *MTU*
        '''
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError('Data must be of type bytes, {} given'.format(type(data)))

        frame = self.codec.encode(data)
        logger.debug('TX: {} bytes in {} frame bytes'.format(len(data), len(frame)))
        return self.modulator.render(frame)

    def push(self, samples):
        '''Pass received samples to the receiver, see *Demodulator.push*.'''
        return self.demodulator.push(samples)

    def finish(self):
        '''Signal end of received stream, see *Demodulator.finish*.'''
        return self.demodulator.finish()

    def receive(self, samples):
        '''Decode a complete recording.

        Args:
            samples (numpy.ndarray): Recorded samples

        Returns:
            list: Payloads (bytes) decoded from the recording, in order
        '''
        results = self.push(samples) + self.finish()
        return [result.payload for result in results if result.ok]

    def _process_rx_callback(self, result):
        '''Dispatch a frame result to the callback functions.

        If *str* and *bytes* callbacks are set, both callbacks will be called.

        Args:
            result (dosr.frame.Result): completed frame attempt
        '''
        if not result.ok:
            if self._error_callback is not None:
                self._error_callback(result.error)
            return

        if self._rx_callback_bytes is not None:
            self._rx_callback_bytes(result.payload)

        if self._rx_callback is not None:
            self._rx_callback(result.payload.decode('utf-8', errors='replace'))
