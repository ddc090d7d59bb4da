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


'''Byte level framing and forward error correction.

Frame layout on the wire (bytes):

| Field | Size | Notes |
| -------- | -------- | -------- |
| marker | 3 | *MARKER*, stripped by the receiver before decoding |
| length | 2 | payload length, big endian |
| length parity | 4 | Reed-Solomon, repairs up to 2 header bytes |
| payload | length | |
| checksum | 4 | CRC-32 of length + payload, big endian |
| parity | variable | parity code over payload + checksum |
| padding | 0 - 2 | zeros, fills the last 3 byte symbol |

The parity code is pluggable, see *ParityCode*.
'''

import zlib
import struct
import logging
from typing import NamedTuple

from reedsolo import RSCodec, ReedSolomonError

from dosr.errors import FrameTruncated, ChecksumMismatch
from dosr.profile import ProtocolProfile


logger = logging.getLogger(__name__)

# start of frame, one symbol
MARKER = b'\x5a\x69\x3c'
SYMBOL_BYTES = 3
LENGTH_SIZE = 2
LENGTH_PARITY = 4
HEADER_SIZE = LENGTH_SIZE + LENGTH_PARITY
CRC_SIZE = 4


class Result:
    '''Outcome of one frame reception attempt.

    Exactly one of *payload* and *error* is set.

    Attributes:
        payload (bytes or None): Decoded payload on success
        error (dosr.errors.LinkError or None): Failure on error
    '''
    def __init__(self, payload=None, error=None):
        if (payload is None) == (error is None):
            raise ValueError('Result requires either a payload or an error')

        self.payload = payload
        self.error = error

    @property
    def ok(self):
        '''bool: True if a payload was decoded.'''
        return self.error is None

    def raise_for_error(self):
        '''Raise the failure carried by this result, if any.'''
        if self.error is not None:
            raise self.error

    def __repr__(self):
        if self.ok:
            return 'Result(payload={!r})'.format(self.payload)
        return 'Result(error={}({!r}))'.format(type(self.error).__name__, str(self.error))


class Frame(NamedTuple):
    '''Logical frame contents, *length == len(payload)*.'''
    length: int
    payload: bytes
    checksum: int
    parity: bytes


class ParityCode:
    '''Forward error correction capability used by *FrameCodec*.

    Subclasses compute parity over a block of data and repair the block given its parity.
    '''

    def parity_length(self, data_length):
        '''Get the number of parity bytes produced for *data_length* bytes of data.'''
        raise NotImplementedError

    def encode_parity(self, data):
        '''Compute parity bytes for *data*.

        Args:
            data (bytes): Data to protect

        Returns:
            bytes: Parity bytes, *parity_length(len(data))* long
        '''
        raise NotImplementedError

    def repair(self, data, parity):
        '''Correct errors in *data* using *parity*.

        Args:
            data (bytes): Received data, possibly corrupted
            parity (bytes): Received parity, possibly corrupted

        Returns:
            - bytes: Repaired data
            - None: Corruption exceeds the code's correction capability
        '''
        raise NotImplementedError


class NoParity(ParityCode):
    '''Zero redundancy, corruption is only detected by the frame checksum.'''

    def parity_length(self, data_length):
        return 0

    def encode_parity(self, data):
        return b''

    def repair(self, data, parity):
        return bytes(data)


class ReedSolomonCode(ParityCode):
    '''Reed-Solomon code over GF(2^8).

    Data longer than *255 - nsym* bytes is split into blocks, each block gets *nsym* parity bytes. Each block can repair up to *nsym // 2* corrupted bytes.

    Attributes:
        nsym (int): Parity bytes per block
        block_size (int): Data bytes per block
    '''
    def __init__(self, nsym):
        if not 0 < nsym < 255:
            raise ValueError('Reed-Solomon parity must be between 1 and 254 bytes, got {}'.format(nsym))

        self.nsym = nsym
        self.block_size = 255 - nsym
        self._codec = RSCodec(nsym)

    def _blocks(self, data):
        return [data[i:i + self.block_size] for i in range(0, len(data), self.block_size)]

    def parity_length(self, data_length):
        return -(-data_length // self.block_size) * self.nsym

    def encode_parity(self, data):
        parity = bytearray()

        for block in self._blocks(bytes(data)):
            parity += self._codec.encode(block)[-self.nsym:]

        return bytes(parity)

    def repair(self, data, parity):
        data = bytes(data)
        parity = bytes(parity)

        if len(parity) != self.parity_length(len(data)):
            return None

        repaired = bytearray()

        for index, block in enumerate(self._blocks(data)):
            codeword = bytearray(block) + parity[index * self.nsym:(index + 1) * self.nsym]

            try:
                message, _, errata = self._codec.decode(codeword)
            except ReedSolomonError:
                return None

            if len(errata) > 0:
                logger.debug('Repaired {} bytes in block {}'.format(len(errata), index))

            repaired += message

        return bytes(repaired)


class FrameCodec:
    '''Build and parse frames.

    Attributes:
        profile (dosr.profile.ProtocolProfile): Link profile, sets the maximum payload and default parity
        parity_code (dosr.frame.ParityCode): Code protecting payload and checksum
    '''
    def __init__(self, profile=None, parity_code=None):
        '''Initialize FrameCodec class instance.

        Args:
            profile (dosr.profile.ProtocolProfile): Link profile, defaults to *ProtocolProfile()*
            parity_code (dosr.frame.ParityCode): Parity code, defaults to Reed-Solomon with *profile.parity_symbols* parity bytes (or no parity if 0)
        '''
        self.profile = profile or ProtocolProfile()

        if parity_code is None:
            if self.profile.parity_symbols > 0:
                parity_code = ReedSolomonCode(self.profile.parity_symbols)
            else:
                parity_code = NoParity()

        self.parity_code = parity_code
        self._header_code = ReedSolomonCode(LENGTH_PARITY)

    def body_length(self, length):
        '''Get the size of payload, checksum and parity for a payload of *length* bytes.'''
        data_length = length + CRC_SIZE
        return data_length + self.parity_code.parity_length(data_length)

    def frame_length(self, header):
        '''Get the total frame length, excluding the marker, announced by a header.

        Args:
            header (bytes): First *HEADER_SIZE* bytes following the marker

        Returns:
            - int: Frame length in bytes, a multiple of 3
            - None: Header could not be repaired or announces an invalid length
        '''
        length = self._read_header(header)

        if length is None:
            return None

        return _pad_length(HEADER_SIZE + self.body_length(length))

    def build(self, payload):
        '''Create the logical frame for a payload.

        Args:
            payload (bytes): Data to send

        Returns:
            dosr.frame.Frame: Frame with checksum and parity computed

        Raises:
            TypeError: Payload is not bytes-like
            ValueError: Payload longer than *profile.max_payload*
        '''
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise TypeError('Payload must be bytes, {} given'.format(type(payload)))

        payload = bytes(payload)

        if len(payload) > self.profile.max_payload:
            raise ValueError('Payload of {} bytes exceeds maximum of {} bytes'.format(len(payload), self.profile.max_payload))

        checksum = _checksum(len(payload), payload)
        parity = self.parity_code.encode_parity(payload + struct.pack('>I', checksum))
        return Frame(len(payload), payload, checksum, parity)

    def encode(self, payload):
        '''Encode a payload into frame bytes, marker included.

        Args:
            payload (bytes): Data to send

        Returns:
            bytes: Frame bytes, a multiple of 3 long
        '''
        frame = self.build(payload)
        length = struct.pack('>H', frame.length)
        data = (MARKER
            + length
            + self._header_code.encode_parity(length)
            + frame.payload
            + struct.pack('>I', frame.checksum)
            + frame.parity)

        return data + bytes(_pad_length(len(data)) - len(data))

    def decode(self, raw):
        '''Repair and validate received frame bytes.

        Args:
            raw (bytes): Bytes following the marker, trailing bytes beyond the declared length are ignored

        Returns:
            dosr.frame.Result: Payload, or *FrameTruncated* / *ChecksumMismatch* error
        '''
        raw = bytes(raw)

        if len(raw) < HEADER_SIZE:
            return Result(error=FrameTruncated('Received {} bytes, header needs {}'.format(len(raw), HEADER_SIZE)))

        length = self._read_header(raw[:HEADER_SIZE])

        if length is None:
            return Result(error=ChecksumMismatch('Frame header could not be repaired'))

        data_end = HEADER_SIZE + length + CRC_SIZE
        body_end = HEADER_SIZE + self.body_length(length)

        if len(raw) < body_end:
            return Result(error=FrameTruncated('Received {} bytes, frame declares {}'.format(len(raw), body_end)))

        data = self.parity_code.repair(raw[HEADER_SIZE:data_end], raw[data_end:body_end])

        if data is None:
            return Result(error=ChecksumMismatch('Frame corruption exceeds parity capability'))

        payload = data[:length]
        checksum = struct.unpack('>I', data[length:])[0]
        expected = _checksum(length, payload)

        if checksum != expected:
            return Result(error=ChecksumMismatch('Checksum 0x{:08x} does not match 0x{:08x}'.format(checksum, expected)))

        return Result(payload=payload)

    def _read_header(self, header):
        header = bytes(header)

        if len(header) < HEADER_SIZE:
            return None

        length = self._header_code.repair(header[:LENGTH_SIZE], header[LENGTH_SIZE:HEADER_SIZE])

        if length is None:
            return None

        length = struct.unpack('>H', length)[0]

        if length > self.profile.max_payload:
            logger.debug('Header announces {} bytes, maximum is {}'.format(length, self.profile.max_payload))
            return None

        return length


def _checksum(length, payload):
    return zlib.crc32(struct.pack('>H', length) + payload) & 0xFFFFFFFF


def _pad_length(length):
    return -(-length // SYMBOL_BYTES) * SYMBOL_BYTES
