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

'''Command line interface for dosr.

Encode a message to a WAV file, decode a WAV file, or play and listen through the sound card.

Try `python -m dosr --help` for command line switch options.
'''

import sys
import time
import logging
import argparse

import numpy as np

import dosr
from dosr.audio import AudioDevice, read_wav, write_wav


def _write_stdout(data):
    sys.stdout.write(data + '\n')
    sys.stdout.flush()

def _timing(label, seconds):
    sys.stderr.write('{}: {:.3f} ms\n'.format(label, seconds * 1000))

def _build_profile(args, sample_rate=None):
    '''Build the protocol profile from command line switches.

    The symbol duration of the selected profile is kept when only the sample rate changes.
    '''
    preset = dosr.ProtocolProfile.from_name(args.profile)
    overrides = {}
    rate = args.sample_rate or sample_rate

    if rate is not None:
        overrides['sample_rate'] = rate
    else:
        rate = preset.sample_rate

    if args.duration_ms is not None:
        overrides['symbol_samples'] = int(round(rate * args.duration_ms / 1000))
    elif rate != preset.sample_rate:
        overrides['symbol_samples'] = int(round(rate * preset.symbol_duration))

    if args.parity is not None:
        overrides['parity_symbols'] = args.parity
    if args.base_freq is not None:
        overrides['base_frequency'] = args.base_freq

    return dosr.ProtocolProfile.from_name(args.profile, **overrides)

def _audio_device(args, profile):
    device = AudioDevice(sample_rate=profile.sample_rate)

    if args.search_in is not None:
        device.input_device = device.find_device(args.search_in, 'input')
        if device.input_device is None:
            raise OSError('No audio input device found containing: {}'.format(args.search_in))

    if args.search_out is not None:
        device.output_device = device.find_device(args.search_out, 'output')
        if device.output_device is None:
            raise OSError('No audio output device found containing: {}'.format(args.search_out))

    return device

def _transmission(args, modem):
    start = time.perf_counter()
    samples = modem.send(args.message)
    encoding_time = time.perf_counter() - start

    silence = np.zeros(int(modem.profile.sample_rate * args.silence_ms / 1000), dtype=np.float32)
    samples = np.concatenate([silence, samples, silence])

    if args.verbose:
        _timing('Encoding time', encoding_time)
        sys.stderr.write('{} bytes, {:.2f} s of audio\n'.format(len(args.message.encode('utf-8')), len(samples) / modem.profile.sample_rate))

    return samples

def encode(args):
    profile = _build_profile(args)
    modem = dosr.Modem(profile)
    samples = _transmission(args, modem)
    write_wav(args.output, samples, profile.sample_rate)
    return 0

def decode(args):
    samples, sample_rate = read_wav(args.input)
    profile = _build_profile(args, sample_rate)
    # a declared rate that disagrees with the recording is rejected here
    demodulator = dosr.Demodulator(profile, sample_rate=sample_rate)

    start = time.perf_counter()
    results = demodulator.push(samples) + demodulator.finish()
    decoding_time = time.perf_counter() - start

    if args.verbose:
        _timing('Decoding time', decoding_time)

    payloads = [result.payload for result in results if result.ok]

    for payload in payloads:
        _write_stdout(payload.decode('utf-8', errors='replace'))

    return 0 if len(payloads) > 0 else 1

def play(args):
    profile = _build_profile(args)
    modem = dosr.Modem(profile)
    samples = _transmission(args, modem)
    device = _audio_device(args, profile)

    try:
        device.play(samples)
    finally:
        device.close()

    return 0

def listen(args):
    profile = _build_profile(args)
    modem = dosr.Modem(profile)
    modem.set_rx_callback(_write_stdout)
    device = _audio_device(args, profile)

    if not args.quiet:
        print('Press Ctrl+C to exit...')

    try:
        device.listen(modem.push, duration=args.duration)
    except KeyboardInterrupt:
        print()
    finally:
        modem.finish()
        device.close()

    return 0

def main(argv=None):
    program = 'python -m dosr'
    help_epilog = 'Profiles: {}\n'.format(', '.join(dosr.PROFILES))
    help_epilog += 'Transmitter and receiver must use the same profile and switches.\n'

    parser = argparse.ArgumentParser(prog=program, description='Data over sound modem', epilog=help_epilog)
    parser.add_argument('--profile', help='Protocol profile, defaults to \'audible\'', default='audible', choices=list(dosr.PROFILES))
    parser.add_argument('--sample-rate', help='Sample rate in Hz (decode defaults to the WAV file rate)', type=int, metavar='HZ')
    parser.add_argument('--duration-ms', help='Symbol duration in milliseconds', type=float, metavar='MS')
    parser.add_argument('--parity', help='Reed-Solomon parity bytes per block, 0 disables error correction', type=int, metavar='BYTES')
    parser.add_argument('--base-freq', help='Base tone frequency in Hz', type=float, metavar='FREQ')
    parser.add_argument('-v', '--verbose', help='Print timing information', action='store_true')
    parser.add_argument('--debug', help='Print debug log messages', action='store_true')
    parser.add_argument('--quiet', help='Only print errors and received data', action='store_true')

    commands = parser.add_subparsers(dest='command', required=True)

    encode_parser = commands.add_parser('encode', help='Encode a message to a WAV file')
    encode_parser.add_argument('message', help='Message to encode')
    encode_parser.add_argument('output', help='Output WAV file path')
    encode_parser.add_argument('--silence-ms', help='Silence before and after the transmission', type=float, default=250, metavar='MS')
    encode_parser.set_defaults(func=encode)

    decode_parser = commands.add_parser('decode', help='Decode messages from a WAV file')
    decode_parser.add_argument('input', help='Input WAV file path')
    decode_parser.set_defaults(func=decode)

    play_parser = commands.add_parser('play', help='Play a message through the sound card')
    play_parser.add_argument('message', help='Message to send')
    play_parser.add_argument('--silence-ms', help='Silence before and after the transmission', type=float, default=250, metavar='MS')
    play_parser.add_argument('--search-out', help='Audio output device search text', metavar='TEXT')
    play_parser.set_defaults(func=play, search_in=None)

    listen_parser = commands.add_parser('listen', help='Print messages received by the sound card')
    listen_parser.add_argument('--search-in', help='Audio input device search text', metavar='TEXT')
    listen_parser.add_argument('--duration', help='Stop listening after this many seconds', type=float, metavar='SEC')
    listen_parser.set_defaults(func=listen, search_out=None)

    args = parser.parse_args(argv)

    if args.debug:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logging.basicConfig(level=level, format='%(levelname)s %(name)s: %(message)s')

    try:
        return args.func(args)
    except (dosr.ConfigError, ValueError, OSError) as e:
        sys.stderr.write('{}: error: {}\n'.format(program, e))
        return 2


if __name__ == '__main__':
    sys.exit(main())
