from setuptools import setup

requirements = [
    'numpy',
    'graphviz',
    'arsenal',
]


setup(
    name='dnacodec',
    version='0.1',
    description='Transducer-based DNA storage codec with closure and Viterbi decoders',
    install_requires=requirements,
    extras_require={'test': ['pytest']},
    python_requires='>=3.10',
    authors=[
        'Tim Vieira',
    ],
    readme='',
    scripts=[],
    packages=['dnacodec'],
)
