from setuptools import setup, find_packages


setup(
    name='latticeic',
    author='Sijie Huang',
    description="Vacuum fluctuation initial conditions for scalar fields on a periodic lattice",
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    install_requires=[
        'numpy',
        'numba',
        'mpi4py',
        'shenfun',
        'h5py',
        'rich',
    ],
    extras_require={
        'test': ['pytest'],
    }
)
