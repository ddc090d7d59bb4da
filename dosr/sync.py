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


'''Preamble search, symbol timing lock and symbol decoding.

The receiver is a state machine over an explicit *SyncState* value:

| Phase | Action | Next |
| -------- | -------- | -------- |
| SEARCHING | slide an analysis window by a quarter symbol and score it against the preamble patterns | LOCKED once enough preamble is seen and an A/B transition fixes the symbol boundary |
| LOCKED | decode one symbol per symbol period, skip the remaining preamble, wait for the start marker, collect frame bytes | DRAINING once the frame length is reached, SEARCHING if the lock is lost |
| DRAINING | hand the collected bytes to the frame codec | SEARCHING |

The state is replaced, never modified, so every transition is visible in *Synchronizer.step*.
'''

import logging
from enum import Enum
from typing import NamedTuple, Optional

import numpy as np

from dosr.errors import NoSignal, SyncLost
from dosr.frame import FrameCodec, Result, MARKER, HEADER_SIZE
from dosr.fsk import SpectralAnalyzer, PREAMBLE_PATTERNS, bytes_to_nibbles, nibbles_to_bytes
from dosr.profile import ProtocolProfile
from dosr.tones import ToneTable


logger = logging.getLogger(__name__)


class Phase(Enum):
    SEARCHING = 'searching'
    LOCKED = 'locked'
    DRAINING = 'draining'


class SyncState(NamedTuple):
    '''Receiver state.

    Sample positions are absolute, counted from the first sample pushed.

    Attributes:
        phase (Phase): Current phase
        window_offset (int): Next analysis window (SEARCHING) or next symbol start (LOCKED)
        marker_confidence (float): Preamble match score accumulated by the current run of preamble windows
        pattern (int or None): Preamble pattern matched by the last classified window
        pattern_offset (int): Position of the last classified window
        misses (int): Consecutive unclassified windows in the current run
        searched (int): Samples searched without lock since the last report
        reference (float): Preamble tone level, the amplitude reference of a lock
        framed (bool): Start marker received
        preamble_seen (int): Preamble symbols skipped since lock
        raw (bytes): Frame bytes received after the marker
        expected (int or None): Frame length announced by the header
        weak (int): Consecutive weak symbols
    '''
    phase: Phase = Phase.SEARCHING
    window_offset: int = 0
    marker_confidence: float = 0.0
    pattern: Optional[int] = None
    pattern_offset: int = 0
    misses: int = 0
    searched: int = 0
    reference: float = 0.0
    framed: bool = False
    preamble_seen: int = 0
    raw: bytes = b''
    expected: Optional[int] = None
    weak: int = 0


class Synchronizer:
    '''Turn a sample stream into frame results.

    Attributes:
        profile (dosr.profile.ProtocolProfile): Link profile
        codec (dosr.frame.FrameCodec): Frame codec used when a frame completes
        state (SyncState): Current state
    '''
    def __init__(self, profile=None, codec=None, tone_table=None, analyzer=None):
        self.profile = profile or ProtocolProfile()
        self.codec = codec or FrameCodec(self.profile)
        self.tones = tone_table or ToneTable(self.profile)
        self.analyzer = analyzer or SpectralAnalyzer(self.profile)
        self.state = SyncState()

        self._samples = np.zeros(0, dtype=np.float32)
        self._start = 0

        chunk_index = np.arange(self.profile.chunks)
        # tone bins relative to the analyzer band, one row per chunk
        self._bins = self.tones.bins - self.analyzer.first_bin
        self._patterns = [np.array(pattern) for pattern in PREAMBLE_PATTERNS]
        self._pattern_bins = [self._bins[chunk_index, pattern] for pattern in self._patterns]
        self._marker = np.array(bytes_to_nibbles(MARKER))

        spare = self.profile.symbol_samples - self.profile.window_size
        spread = spare // 4 if self.profile.sub_windows > 1 else 0
        self._sub_offsets = [spare // 2 + int(round(offset)) for offset in np.linspace(-spread, spread, self.profile.sub_windows)]
        # samples read from a symbol start, the trailing ramp is not needed
        self._symbol_span = max(self._sub_offsets) + self.profile.window_size

    @property
    def end(self):
        '''int: Absolute position after the last buffered sample.'''
        return self._start + len(self._samples)

    def push(self, samples):
        '''Buffer samples and advance the state machine as far as they allow.

        Args:
            samples (numpy.ndarray): float samples at the profile sample rate

        Returns:
            list: *dosr.frame.Result* for each completed frame attempt
        '''
        samples = np.asarray(samples, dtype=np.float32).ravel()
        self._samples = np.concatenate([self._samples, samples])
        results = []

        while True:
            step = self.step(self.state)

            if step is None:
                break

            self.state, result = step

            if result is not None:
                results.append(result)

        self._trim()
        return results

    def flush(self):
        '''End of stream: report a frame in progress and reset.

        Returns:
            list: *dosr.frame.Result* for the interrupted attempt, if any
        '''
        state = self.state
        results = []

        if state.phase == Phase.DRAINING:
            results.append(self._drain(state)[1])
        elif state.phase == Phase.LOCKED and state.framed:
            # the codec reports the missing bytes
            results.append(self.codec.decode(state.raw))
        elif state.phase == Phase.LOCKED:
            results.append(Result(error=NoSignal('Stream ended before start of frame')))

        self.reset()
        return results

    def reset(self):
        '''Drop buffered samples and return to SEARCHING.'''
        self._start = self.end
        self._samples = np.zeros(0, dtype=np.float32)
        self.state = SyncState(window_offset=self._start)

    def step(self, state):
        '''Perform one transition.

        Args:
            state (SyncState): State to advance from

        Returns:
            - tuple: New state and a *dosr.frame.Result* or None
            - None: More samples are needed
        '''
        if state.phase == Phase.SEARCHING:
            return self._search(state)
        if state.phase == Phase.LOCKED:
            return self._decode_symbol(state)
        return self._drain(state)

    def _search(self, state):
        offset = state.window_offset
        window = self._window(offset)

        if window is None:
            return None

        pattern, score, level = self._classify(self.analyzer.analyze(window))
        searched = state.searched + self.profile.hop_samples
        state = state._replace(window_offset=offset + self.profile.hop_samples, searched=searched)

        if pattern is None:
            if state.misses >= 1:
                # run broken
                state = state._replace(marker_confidence=0.0, pattern=None, reference=0.0)
            state = state._replace(misses=state.misses + 1)

            if searched >= self.profile.no_signal_samples:
                error = NoSignal('No preamble within {:.1f} s'.format(searched / self.profile.sample_rate))
                return state._replace(searched=0), Result(error=error)

            return state, None

        confidence = state.marker_confidence + score

        if state.pattern is not None and pattern != state.pattern and confidence >= self.profile.lock_confidence:
            boundary = self._find_boundary(state.pattern_offset, offset, state.pattern, pattern)
            logger.debug('Locked at sample {} (confidence {:.2f})'.format(boundary, confidence))
            return SyncState(
                phase=Phase.LOCKED,
                window_offset=boundary,
                marker_confidence=confidence,
                reference=max(state.reference, level)
            ), None

        return state._replace(
            marker_confidence=confidence,
            pattern=pattern,
            pattern_offset=offset,
            misses=0,
            reference=max(state.reference, level)
        ), None

    def _decode_symbol(self, state):
        start = state.window_offset

        if start + self._symbol_span > self.end:
            return None

        magnitudes = np.mean([self.analyzer.analyze(self._window(start + offset)) for offset in self._sub_offsets], axis=0)
        nibbles, peaks, clean = self._chunks(magnitudes)
        strong = clean & (peaks >= self.profile.noise_floor * state.reference)
        state = state._replace(window_offset=start + self.profile.symbol_samples)

        if 2 * np.count_nonzero(strong) < self.profile.chunks:
            if state.weak + 1 >= self.profile.max_weak_symbols:
                return self._lose_lock(state)

            state = state._replace(weak=state.weak + 1)

            if not state.framed:
                return state, None
        else:
            state = state._replace(weak=0)

        if not state.framed:
            return self._await_marker(state, nibbles)

        raw = state.raw + nibbles_to_bytes(nibbles)
        expected = state.expected

        if expected is None and len(raw) >= HEADER_SIZE:
            expected = self.codec.frame_length(raw[:HEADER_SIZE])

            if expected is None:
                # unrepairable header, the codec reports it
                expected = len(raw)

        state = state._replace(raw=raw, expected=expected)

        if expected is not None and len(raw) >= expected:
            state = state._replace(phase=Phase.DRAINING)

        return state, None

    def _await_marker(self, state, nibbles):
        matches = self.profile.chunks - 1

        if np.count_nonzero(nibbles == self._marker) >= matches:
            logger.debug('Start of frame at sample {}'.format(state.window_offset - self.profile.symbol_samples))
            return state._replace(framed=True), None

        if state.preamble_seen < self.profile.preamble_symbols:
            for pattern in self._patterns:
                if np.count_nonzero(nibbles == pattern) >= matches:
                    return state._replace(preamble_seen=state.preamble_seen + 1), None

        # locked onto something that is not a transmission
        restart = state.window_offset - self.profile.symbol_samples
        return SyncState(window_offset=restart), Result(error=NoSignal('No start of frame after preamble'))

    def _lose_lock(self, state):
        if state.framed:
            error = SyncLost('Lock lost after {} frame bytes'.format(len(state.raw)))
        else:
            error = NoSignal('Lock lost before start of frame')

        logger.debug('Lock lost at sample {}'.format(state.window_offset))
        return SyncState(window_offset=state.window_offset), Result(error=error)

    def _drain(self, state):
        result = self.codec.decode(state.raw[:state.expected])
        return SyncState(window_offset=state.window_offset), result

    def _window(self, offset):
        begin = offset - self._start

        if begin + self.profile.window_size > len(self._samples):
            return None

        return self._samples[begin:begin + self.profile.window_size]

    def _chunks(self, magnitudes):
        '''Get per chunk nibble, peak magnitude and dominance from band magnitudes.'''
        grid = magnitudes[self._bins]
        ordered = np.sort(grid, axis=1)
        nibbles = np.argmax(grid, axis=1)
        peaks = ordered[:, -1]
        clean = peaks > self.profile.dominance * ordered[:, -2]
        return nibbles, peaks, clean

    def _classify(self, magnitudes):
        '''Match a window against the preamble patterns.

        Returns:
            tuple: Pattern index (or None), match score (0 - 1) and mean level of the matched tones
        '''
        nibbles, peaks, clean = self._chunks(magnitudes)

        for index, pattern in enumerate(self._patterns):
            matched = (nibbles == pattern) & clean
            count = np.count_nonzero(matched)

            if count >= self.profile.chunks - 1:
                return index, count / self.profile.chunks, float(peaks[matched].mean())

        return None, 0.0, 0.0

    def _find_boundary(self, left, right, first, second):
        '''Bisect the symbol boundary between a window of the first pattern and a window of the second.

        The window whose center sits on the boundary sees both patterns at equal strength.
        '''
        while right - left > 8:
            middle = (left + right) // 2

            if self._balance(middle, first, second) < 0:
                left = middle
            else:
                right = middle

        return (left + right) // 2 + self.profile.window_size // 2

    def _balance(self, offset, first, second):
        magnitudes = self.analyzer.analyze(self._window(offset))
        first_level = magnitudes[self._pattern_bins[first]].sum()
        second_level = magnitudes[self._pattern_bins[second]].sum()
        return (second_level - first_level) / (first_level + second_level + 1e-12)

    def _trim(self):
        keep = self.state.window_offset - 2 * self.profile.symbol_samples

        if self.state.phase == Phase.SEARCHING and self.state.pattern is not None:
            keep = min(keep, self.state.pattern_offset)

        drop = keep - self._start

        if drop > self.profile.symbol_samples:
            self._samples = self._samples[drop:]
            self._start += drop
