from setuptools import setup

setup(
    name='quantile-cut-points',
    version='1.0',
    py_modules=[
        'binning',
        'cut_assignment',
        'discretization',
        'fair_ordering',
        'random_stream',
        'splitting_ranges',
    ],
    description='Fair, reproducible quantile cut points for histogram-based tree learners',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    python_requires='>=3.10',
    install_requires=[
        'numpy>=1.22',
    ],
    extras_require={
        'test': ['pytest>=7.0'],
        'experiments': ['pandas>=1.5'],
    },
)
