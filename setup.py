import setuptools
from setuptools import setup

with open('README.md', 'r') as fh:
    long_description = fh.read()

setup(
    name='dosr',
    version='0.1.0',
    author='dosr developers',
    description='Data over sound modem using multi-tone FSK with Reed-Solomon error correction',
    long_description=long_description,
    long_description_content_type='text/markdown',
    packages=setuptools.find_packages(exclude=['tests', 'tests.*']),
    install_requires=[
        'numpy',
        'reedsolo>=1.0',
    ],
    extras_require={
        'audio': ['pyaudio'],
        'test': ['pytest'],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.8'
)
