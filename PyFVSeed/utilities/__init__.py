from PyFVSeed.utilities import general
from PyFVSeed.utilities import time
