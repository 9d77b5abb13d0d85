from setuptools import setup, find_packages

setup(
    name='slr',
    version='0.1.0',
    package_dir={'': 'src'},
    packages=find_packages('src'),
    python_requires='>=3.8',
    install_requires=[
        'pandas',
        'numpy',
        'scipy',
        'joblib',
        'matplotlib',
        'scikit-learn'
    ],
    extras_require={
        'test': ['pytest'],
    },
    description='Supervised log-ratio balance regression for compositional data, with cross-validated screening thresholds.',
    author='SLR developers',
)
