"""
Tools to prepare initial conditions for an FVCOM run from regularly gridded model output.

A port of the restart seeding functions from the MATLAB toolbox:
    https://github.com/pwcazenave/fvcom-toolbox/tree/master/fvcom_prepro/

"""

import copy
from datetime import datetime

import numpy as np
from netCDF4 import Dataset

from PyFVSeed.errors import InputShapeError
from PyFVSeed.grid import fill_undefined_nodes
from PyFVSeed.interpolate import interpolate_layers
from PyFVSeed.utilities.general import PassiveStore, warn
from PyFVSeed.utilities.time import julian_day, mjd_from_units, nearest_time_index
from PyFVSeed.vertical import grid_vert_interp


# POLCOMS daily mean temperature and salinity.
default_variables = {'temp': 'ETWD', 'salinity': 'x1XD'}


class RegularReader(object):
    """
    Class to read in regularly gridded model output (e.g. POLCOMS) with spatially and temporally varying depths.

    The 4D variables are stored in the netCDF files as (time, depth, lat, lon). We store them as (lat, lon, depth,
    time) in self.data. The depth axis is left as it is in the file.

    """

    def __init__(self, filename, variables, noisy=False):
        """
        Parameters
        ----------
        filename : str, pathlib.Path
            The netCDF file to read.
        variables : list
            Variables to extract. Variables missing in the file raise an error. The depth variable (`depth') is
            always loaded.
        noisy : bool, optional
            Set to True to enable verbose output. Defaults to False.

        """

        self._noisy = noisy
        self.filename = str(filename)
        self.variables = [i for i in variables if i != 'depth']

        self.dims = PassiveStore()
        self.grid = PassiveStore()
        self.time = PassiveStore()
        self.data = PassiveStore()

        with Dataset(self.filename, 'r') as ds:
            missing = [i for i in ['lon', 'lat', 'time', 'depth'] + self.variables if i not in ds.variables]
            if missing:
                raise KeyError(f"Missing variable(s) {', '.join(missing)} in {self.filename}")

            self._load_grid(ds)
            self._load_time(ds)
            for var in self.variables + ['depth']:
                self.load_data(ds, var)

    def _load_grid(self, ds):
        self.grid.lon = np.ma.filled(ds.variables['lon'][:].astype(float), np.nan).ravel()
        self.grid.lat = np.ma.filled(ds.variables['lat'][:].astype(float), np.nan).ravel()
        self.dims.lon = len(self.grid.lon)
        self.dims.lat = len(self.grid.lat)

    def _load_time(self, ds):
        """ Convert the netCDF times to Modified Julian Days. """
        self.time.units = ds.variables['time'].units
        self.time.offset = np.ma.filled(ds.variables['time'][:].astype(float), np.nan).ravel()
        self.time.time = mjd_from_units(self.time.offset, self.time.units)
        self.dims.time = len(self.time.time)

    def load_data(self, ds, var):
        """
        Load the given variable, reordering it to (lat, lon, depth, time). Missing values are NaN.

        Parameters
        ----------
        ds : netCDF4.Dataset
            The open netCDF file.
        var : str
            The variable to load.

        """

        if self._noisy:
            print(f'Loading {var} from {self.filename}')

        data = np.ma.filled(ds.variables[var][:].astype(float), np.nan)
        dimensions = ds.variables[var].dimensions
        if data.ndim == 3 and var == 'depth' and 'time' not in dimensions:
            # Time-invariant depths; repeat them for each time.
            data = np.repeat(data[np.newaxis, ...], self.dims.time, axis=0)
        if data.ndim != 4:
            raise InputShapeError(f'{var} should be 4D (time, depth, lat, lon), not {data.shape}.')
        if data.shape[0] != self.dims.time or data.shape[2:] != (self.dims.lat, self.dims.lon):
            raise InputShapeError(f'{var} has shape {data.shape}, which does not match the time ({self.dims.time}), '
                                  f'lat ({self.dims.lat}) and lon ({self.dims.lon}) dimensions.')

        setattr(self.data, var, np.transpose(data, (2, 3, 1, 0)))
        self.dims.depth = data.shape[1]

    def __rshift__(self, other):
        """
        This special method means we can stack two RegularReader objects in time through a simple append (e.g.
        polcoms = polcoms2 >> polcoms1).

        """

        if (self.dims.lon, self.dims.lat, self.dims.depth) != (other.dims.lon, other.dims.lat, other.dims.depth):
            raise InputShapeError('Horizontal or vertical dimensions are incompatible.')
        if not (np.allclose(self.grid.lon, other.grid.lon) and np.allclose(self.grid.lat, other.grid.lat)):
            raise InputShapeError('Horizontal positions are incompatible.')
        if [i for i in self.data] != [i for i in other.data]:
            raise ValueError('Loaded data sets for each RegularReader class must match.')
        if other.time.time[-1] > self.time.time[0]:
            raise ValueError("Time periods are incompatible (`self' must start on or after the end of `other'). "
                             f"`other' ends at {other.time.time[-1]} and `self' starts at {self.time.time[0]}")

        # Copy ourselves to a new version for concatenation. self is the new so gets appended to the old.
        idem = copy.copy(self)
        idem.time = PassiveStore()
        idem.data = PassiveStore()
        idem.dims = copy.copy(self.dims)
        idem.time.units = self.time.units
        idem.time.time = np.concatenate((other.time.time, self.time.time))
        idem.time.offset = np.concatenate((other.time.offset, self.time.offset))
        for var in self.data:
            setattr(idem.data, var, np.concatenate((getattr(other.data, var), getattr(self.data, var)), axis=-1))

        # Remove duplicate times (the end of one file and the start of the next).
        _, unique = np.unique(idem.time.time, return_index=True)
        if len(unique) != len(idem.time.time):
            warn('Dropping duplicate times from the merged data.')
            unique = np.sort(unique)
            idem.time.time = idem.time.time[unique]
            idem.time.offset = idem.time.offset[unique]
            for var in idem.data:
                setattr(idem.data, var, getattr(idem.data, var)[..., unique])

        idem.dims.time = len(idem.time.time)

        return idem


def read_regular(regular, variables, noisy=False):
    """
    Read regularly gridded model data and provides a RegularReader object with the files concatenated in time.

    Parameters
    ----------
    regular : str, pathlib.Path, list
        File or files to read, in time order.
    variables : list
        Variables to extract. Variables missing in the files raise an error.
    noisy : bool, optional
        Set to True to enable verbose output. Defaults to False.

    Returns
    -------
    regular_model : PyFVSeed.preproc.RegularReader
        A RegularReader object with the requested variables loaded.

    """

    if isinstance(regular, (str, bytes)) or not hasattr(regular, '__iter__'):
        regular = [regular]

    regular_model = None
    for file in regular:
        if noisy:
            print('Loading file {}'.format(file))
        if regular_model is None:
            regular_model = RegularReader(file, variables, noisy=noisy)
        else:
            regular_model = RegularReader(file, variables, noisy=noisy) >> regular_model

    if regular_model is None:
        raise ValueError('No files given to read.')

    return regular_model


def normalise_orientation(data, depth, time_index):
    """
    Extract a single time from the regularly gridded data and reorder it to match how FVCOM works.

    POLCOMS' scalar values (temperature, salinity etc.) are stored seabed to surface; its depths are stored surface
    to seabed; FVCOM stores everything surface to seabed. As such, the scalar values need to be flipped upside down
    to match everything else. Both are also swapped from (y, x) to (x, y).

    Parameters
    ----------
    data : np.ndarray
        Scalar data (y, x, depth, time), seabed to surface.
    depth : np.ndarray
        Depths (y, x, depth, time), surface to seabed, negative down with land zero or positive.
    time_index : int
        The time to extract.

    Returns
    -------
    data : np.ndarray
        Scalar data (x, y, depth), surface to seabed.
    depth : np.ndarray
        Depths (x, y, depth), surface to seabed.
    mask : np.ndarray
        True for land (x, y).

    """

    data, depth = np.asarray(data), np.asarray(depth)
    if data.ndim != 4 or data.shape != depth.shape:
        raise InputShapeError(f'Data {data.shape} and depth {depth.shape} should both be (y, x, depth, time).')

    data = np.flip(np.transpose(data[..., time_index], (1, 0, 2)), axis=2)
    depth = np.transpose(depth[..., time_index], (1, 0, 2))
    mask = depth[:, :, -1] >= 0  # land is positive

    return data, depth, mask


def interp_regular_to_mesh(mesh, regular, start_date, variables=None, vertical_interp=grid_vert_interp, pool=None,
                           noisy=False):
    """
    Interpolate regularly gridded temperature and salinity onto the unstructured grid to use as initial conditions.

    FVCOM does not yet support spatially varying temperature and salinity inputs as initial conditions. To avoid
    having to run a model for a long time in order for temperature and salinity to settle within the model from the
    atmospheric and boundary forcing, we can use a restart file to cheat. For this, we need temperature and salinity
    interpolated onto the unstructured grid.

    The time closest to `start_date' is used (there's no interpolation in time and no warning if `start_date' is
    outside the data). Each water column is interpolated onto the sigma layers, then each sigma layer is interpolated
    horizontally with natural neighbours. Nodes outside the regular grid, or next to land in it, take the profile of
    the nearest node with data.

    Parameters
    ----------
    mesh : PyFVSeed.grid.Mesh
        The unstructured grid.
    regular : PyFVSeed.preproc.RegularReader
        The regularly gridded data (something with grid.lon, grid.lat, time.time (Modified Julian Day), data.depth
        and the variables in data).
    start_date : datetime.datetime, list
        The model start, either as a datetime or [YYYY, MM, DD, hh, mm, ss].
    variables : dict, optional
        Map of the names to use for the results to the variable names in `regular'. Defaults to
        {'temp': 'ETWD', 'salinity': 'x1XD'}.
    vertical_interp : callable, optional
        Function to do the vertical interpolation with the same signature as PyFVSeed.vertical.grid_vert_interp
        (including the `noisy' keyword).
        Defaults to grid_vert_interp (linear).
    pool : multiprocessing.Pool, concurrent.futures.Executor, optional
        Something with a `map' method for the parallel parts. Omit to run in serial.
    noisy : bool, optional
        Set to True to enable verbose output. Defaults to False.

    Returns
    -------
    mesh : PyFVSeed.grid.Mesh
        The same mesh with mesh.restart.<name> (node, siglay) for each variable, mesh.restart.time_index and
        mesh.restart.time (Modified Julian Day) added.

    Example
    -------
    >>> from PyFVSeed.grid import Mesh
    >>> from PyFVSeed.preproc import read_regular, interp_regular_to_mesh
    >>> polcoms = read_regular(['ts_2006.nc'], ['ETWD', 'x1XD'])
    >>> mesh = Mesh(lon, lat, h=h, siglay=siglay)
    >>> interp_regular_to_mesh(mesh, polcoms, datetime(2006, 1, 1))
    >>> mesh.restart.temp.shape  # (node, siglay)

    """

    subname = 'interp_regular_to_mesh'

    if noisy:
        print(f'\nbegin : {subname}')

    if variables is None:
        variables = default_variables

    lon = np.ravel(regular.grid.lon)
    lat = np.ravel(regular.grid.lat)
    times = np.ravel(regular.time.time)
    depth = np.asarray(regular.data.depth)
    expected = (len(lat), len(lon), depth.shape[2] if depth.ndim == 4 else None, len(times))
    if depth.shape != expected:
        raise InputShapeError(f'Depth has shape {depth.shape}, expected (lat, lon, depth, time) {expected}.')
    for name in variables.values():
        if np.shape(getattr(regular.data, name)) != depth.shape:
            raise InputShapeError(f'{name} has shape {np.shape(getattr(regular.data, name))}, expected {depth.shape}.')

    # Given our input time, find the nearest time index for the regularly gridded data.
    if isinstance(start_date, datetime):
        start = julian_day(start_date, mjd=True)
    else:
        start = julian_day(list(start_date), mjd=True)
    time_index = nearest_time_index(times, start)

    # Make (x, y) arrays to match the reordered data.
    lon, lat = np.meshgrid(lon, lat, indexing='ij')

    if noisy:
        print(f"{subname} : interpolate onto the mesh's vertical grid", flush=True)

    profiles = []
    for name in variables.values():
        data, z, mask = normalise_orientation(getattr(regular.data, name), depth, time_index)
        profiles.append(vertical_interp(mesh, lon, lat, data, z, mask, noisy=noisy))

    if noisy:
        print(f"{subname} : interpolate onto the mesh's horizontal grid", flush=True)

    interpolated = interpolate_layers(lon, lat, profiles, mesh.lon, mesh.lat, pool=pool, noisy=noisy)

    # Natural neighbour interpolation doesn't extrapolate, so we've got NaNs outside the original data. Land in
    # the original data also gives NaNs nearby. Fill those from the nearest nodes with data.
    interpolated = fill_undefined_nodes(mesh.lon, mesh.lat, *interpolated, pool=pool, noisy=noisy)

    for name, values in zip(variables, interpolated):
        setattr(mesh.restart, name, values)
    mesh.restart.time_index = time_index
    mesh.restart.time = times[time_index]

    if noisy:
        print(f'end   : {subname}')

    return mesh


class Restart(object):
    """
    Use and abuse FVCOM restart files.

    """

    def __init__(self, filename, noisy=False):
        """
        Open an existing restart file to use as a template.

        Parameters
        ----------
        filename : str, pathlib.Path
            The FVCOM restart file.
        noisy : bool, optional
            Set to True to enable verbose output. Defaults to False.

        """

        self._noisy = noisy
        self.filename = str(filename)
        self.ds = Dataset(self.filename, 'r')
        self.data = PassiveStore()

        # Store which variables have been replaced so we can do the right thing when writing to netCDF (i.e. use the
        # replaced data rather than what's in the input restart file).
        self.replaced = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        """ Close the template restart file. """
        self.ds.close()

    def replace_variable(self, variable, data):
        """
        Replace the values in `variable' with the given `data'.

        This appends `variable' to the list of variables we've amended (self.replaced).

        Parameters
        ----------
        variable : str
            The variable in the restart file to replace.
        data : numpy.ndarray
            The data with which to replace it. Must match the shape of the existing variable.

        """

        if variable not in self.ds.variables:
            raise KeyError(f'{variable} is not in {self.filename}')

        data = np.asarray(data)
        if data.shape != self.ds.variables[variable].shape:
            raise InputShapeError(f'New {variable} data {data.shape} do not match the restart file '
                                  f'{self.ds.variables[variable].shape}.')

        setattr(self.data, variable, data)
        if variable not in self.replaced:
            self.replaced.append(variable)

    def replace_from_mesh(self, mesh, names=None):
        """
        Replace variables with the interpolated data in mesh.restart.

        The (node, siglay) data are transposed to FVCOM's (siglay, node) and repeated for each time in the restart
        file.

        Parameters
        ----------
        mesh : PyFVSeed.grid.Mesh
            The mesh with interpolated data (e.g. from interp_regular_to_mesh).
        names : list, optional
            The variables to replace. Defaults to those in default_variables (temp and salinity).

        """

        if names is None:
            names = list(default_variables)

        for name in names:
            if name not in self.ds.variables:
                raise KeyError(f'{name} is not in {self.filename}')
            data = np.asarray(getattr(mesh.restart, name)).T
            shape = self.ds.variables[name].shape
            if len(shape) == data.ndim + 1:
                data = np.tile(data, (shape[0], 1, 1))
            self.replace_variable(name, data)

    def write_restart(self, restart_file, **ncopts):
        """
        Write out an FVCOM-formatted netCDF file based on the template.

        Parameters
        ----------
        restart_file : str, pathlib.Path
            The output file to create.
        ncopts : dict
            The netCDF options passed as kwargs to netCDF4.Dataset.

        """

        with Dataset(restart_file, 'w', clobber=True, **ncopts) as ds:
            # Re-create all the dimensions and global attributes in the loaded restart file.
            for name, dimension in self.ds.dimensions.items():
                ds.createDimension(name, (len(dimension) if not dimension.isunlimited() else None))
            # Job-lot copy of the global attributes.
            ds.setncatts(self.ds.__dict__)

            # Make all the variables.
            for name, variable in self.ds.variables.items():
                fill_value = variable.__dict__.get('_FillValue', None)
                ds.createVariable(name, variable.datatype, variable.dimensions, fill_value=fill_value)
                # Copy variable attributes all at once via dictionary (the fill value has to be set on creation).
                ds[name].setncatts({k: v for k, v in variable.__dict__.items() if k != '_FillValue'})
                if self._noisy:
                    print('Writing {}'.format(name), end=' ')
                if name in self.replaced:
                    if self._noisy:
                        print('NEW DATA')
                    ds[name][:] = getattr(self.data, name)
                else:
                    if self._noisy:
                        print('existing data')
                    ds[name][:] = self.ds[name][:]
