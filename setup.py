from setuptools import setup

version = '1.0.0'

setup(
    name='PyFVSeed',
    packages=['PyFVSeed', 'PyFVSeed.utilities'],
    version=version,
    description=("PyFVSeed interpolates regularly gridded temperature and salinity onto an FVCOM unstructured grid to "
                 "seed a restart file with initial conditions."),
    author='Pierre Cazenave',
    author_email='pica@pml.ac.uk',
    keywords=['fvcom', 'unstructured grid', 'mesh', 'initial conditions', 'restart'],
    license='MIT',
    platforms='any',
    python_requires='>=3.8',
    install_requires=['jdcal', 'netCDF4', 'numpy>=1.13.0', 'scipy>=1.8'],
    extras_require={'test': ['pytest']},
    classifiers=[]
)
