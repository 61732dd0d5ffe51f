"""
Seed FVCOM restart files with initial conditions interpolated from regularly gridded model output (PyFVSeed)

"""

__version__ = '1.0.0'
__author__ = 'Pierre Cazenave'
__credits__ = ['Pierre Cazenave']
__license__ = 'MIT'
__maintainer__ = 'Pierre Cazenave'
__email__ = 'pica@pml.ac.uk'

from PyFVSeed import errors
from PyFVSeed import utilities
from PyFVSeed import grid
from PyFVSeed import interpolate
from PyFVSeed import vertical
from PyFVSeed import preproc
