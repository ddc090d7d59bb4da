import numpy as np
import pytest

import dosr


@pytest.fixture
def profile():
    return dosr.ProtocolProfile()


@pytest.fixture
def modem(profile):
    return dosr.Modem(profile)


def silence(profile, seconds):
    return np.zeros(int(profile.sample_rate * seconds), dtype=np.float32)


def results_of(demodulator, samples):
    return demodulator.push(samples) + demodulator.finish()
