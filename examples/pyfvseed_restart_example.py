# coding: utf-8

# This notebook shows how to seed an FVCOM restart file with temperature and salinity from POLCOMS.
#
# FVCOM can't start from spatially varying temperature and salinity, so we interpolate the POLCOMS fields onto the
# unstructured grid and write them into an existing restart file, which the model then uses as its initial
# conditions.
#
# We need:
#
# - a restart file from a (short) run of the model (casename_restart_0001.nc)
# - POLCOMS daily mean temperature (ETWD) and salinity (x1XD) covering the model start
#

# In[1]:

from datetime import datetime
from multiprocessing import Pool

from netCDF4 import Dataset
import PyFVSeed as pf


# In[2]:

# The grid positions and sigma layers come from the existing restart file.
restart_file = 'casename_restart_0001.nc'
with Dataset(restart_file) as ds:
    lon = ds.variables['lon'][:]
    lat = ds.variables['lat'][:]
    h = ds.variables['h'][:]
    siglay = ds.variables['siglay'][:].T  # (node, siglay)

mesh = pf.grid.Mesh(lon, lat, h=h, siglay=siglay, noisy=True)


# In[3]:

# Load the POLCOMS data. Files must be given in time order.
polcoms = pf.preproc.read_regular(['polcoms_2006_12.nc', 'polcoms_2007_01.nc'], ['ETWD', 'x1XD'], noisy=True)


# In[4]:

# Interpolate onto the grid for the model start. Each sigma layer is interpolated independently, so spread them
# over a pool of workers.
start = datetime(2007, 1, 1)
with Pool() as pool:
    pf.preproc.interp_regular_to_mesh(mesh, polcoms, start, pool=pool, noisy=True)


# In[5]:

# Write a new restart file with the interpolated temperature and salinity.
with pf.preproc.Restart(restart_file, noisy=True) as restart:
    restart.replace_from_mesh(mesh)
    restart.write_restart('casename_restart_polcoms.nc')
