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


'''Exception types used by dosr.

*ConfigError* and *InvalidWindowSize* are raised. Stream failures (subclasses of *LinkError*) are never raised by the receive path, they are returned inside a *dosr.frame.Result* each time a frame attempt completes.
'''


class DosrError(Exception):
    '''Base class for all dosr errors.'''


class ConfigError(DosrError, ValueError):
    '''Invalid protocol profile or receiver configuration.'''


class InvalidWindowSize(DosrError, ValueError):
    '''Spectral analysis input does not match the configured window size.'''


class LinkError(DosrError):
    '''Base class for recoverable stream failures.'''


class NoSignal(LinkError):
    '''No preamble could be locked within the search window.'''


class SyncLost(LinkError):
    '''Symbol lock dropped while a frame was being received.'''


class FrameTruncated(LinkError):
    '''Fewer bytes were received than the frame header declares.'''


class ChecksumMismatch(LinkError):
    '''Corruption beyond what the parity code can repair.'''
