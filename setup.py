#!/usr/bin/env python

from setuptools import setup

setup(
    name='castwright',
    version='0.1.0',
    license='BSD 3-clause license',
    description='Write terminal recordings from a list of commands',
    long_description='A command line tool written in Python which creates '
                     'asciicast v2 recordings of terminal sessions from a '
                     'list of commands and their output, without running '
                     'them.',
    classifiers=[
        'Environment :: Console',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: BSD License',
        'Operating System :: OS Independent',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Topic :: System :: Shells',
        'Topic :: Terminals'
    ],
    python_requires='>=3.7',
    packages=[
        'castwright',
        'castwright.tests'
    ],
    scripts=['scripts/castwright'],
    package_data={
        'castwright': ['data/*.ini'],
    },
    include_package_data=True,
    install_requires=[
        'wcwidth',
    ],
    extras_require={
        'dev': [
            'coverage',
            'pylint',
            'twine',
            'wheel',
        ]
    }
)
