"""
Vertical interpolation of regularly gridded water columns onto the sigma layers of an unstructured grid.

Any function with the signature of grid_vert_interp can be handed to PyFVSeed.preproc.interp_regular_to_mesh in its
place.

"""

import numpy as np
from scipy.interpolate import PchipInterpolator

from PyFVSeed.errors import InputShapeError
from PyFVSeed.grid import find_nearest_point
from PyFVSeed.utilities.general import warn


def _column_linear(depth, values, target):
    # np.interp needs increasing x and holds the end values beyond the range, which is what we want.
    return np.interp(target, depth, values)


def _column_pchip(depth, values, target):
    if len(depth) < 2:
        return np.full(len(target), values[0])
    clamped = np.clip(target, depth[0], depth[-1])
    return PchipInterpolator(depth, values, extrapolate=False)(clamped)


_column_methods = {'linear': _column_linear, 'pchip': _column_pchip}


def interp_column(depth, values, target, method='linear'):
    """
    Interpolate a single water column onto new depths.

    Target depths above the shallowest or below the deepest valid value in the column get the shallowest or deepest
    value, respectively.

    Parameters
    ----------
    depth : np.ndarray
        Depths of the source values (negative down), in any order.
    values : np.ndarray
        The values at `depth'. Non-finite values (and depths) are ignored.
    target : np.ndarray
        The depths onto which to interpolate (negative down).
    method : str, optional
        'linear' or 'pchip' (monotonic cubic). Defaults to 'linear'.

    Returns
    -------
    interpolated : np.ndarray
        Values at `target'. All NaN if the column has no valid values.

    """

    if method not in _column_methods:
        raise ValueError(f"Unknown vertical interpolation method `{method}'. Choose from {list(_column_methods)}.")

    depth = np.asarray(depth, dtype=float)
    values = np.asarray(values, dtype=float)
    target = np.asarray(target, dtype=float)

    valid = np.isfinite(depth) & np.isfinite(values)
    if not np.any(valid):
        return np.full(target.shape, np.nan)

    depth, values = depth[valid], values[valid]
    order = np.argsort(depth, kind='stable')
    depth, values = depth[order], values[order]
    # Repeated depths would upset the cubic, so keep the first of each.
    depth, unique = np.unique(depth, return_index=True)
    values = values[unique]

    return _column_methods[method](depth, values, target)


def grid_vert_interp(mesh, lon, lat, data, depth, mask, method='linear', noisy=False):
    """
    Interpolate the regularly gridded data onto the sigma layer depths of the unstructured grid.

    Each (unmasked) water column is interpolated onto the sigma layer depths of the grid node closest to it.

    Parameters
    ----------
    mesh : PyFVSeed.grid.Mesh
        The unstructured grid (we need mesh.lon, mesh.lat and mesh.siglayz).
    lon, lat : np.ndarray
        Positions of the regularly gridded data (nx, ny).
    data : np.ndarray
        The data to interpolate (nx, ny, nz), surface to seabed.
    depth : np.ndarray
        Depths of `data' (nx, ny, nz), surface to seabed and negative down.
    mask : np.ndarray
        True for land (nx, ny). Masked columns are NaN in the output.
    method : str, optional
        Interpolation in the vertical: 'linear' or 'pchip' (monotonic cubic). Defaults to 'linear'.
    noisy : bool, optional
        Set to True to enable verbose output. Defaults to False.

    Returns
    -------
    interpolated : np.ndarray
        The data interpolated onto the sigma layers (nx, ny, siglay).

    """

    subname = 'grid_vert_interp'

    lon, lat = np.asarray(lon), np.asarray(lat)
    data, depth, mask = np.asarray(data), np.asarray(depth), np.asarray(mask, dtype=bool)
    if data.ndim != 3 or data.shape != depth.shape:
        raise InputShapeError(f'Data {data.shape} and depth {depth.shape} should be the same (nx, ny, nz) shape.')
    if lon.shape != data.shape[:2] or lat.shape != data.shape[:2] or mask.shape != data.shape[:2]:
        raise InputShapeError(f'Positions {lon.shape}, {lat.shape} and mask {mask.shape} should be {data.shape[:2]}.')

    nx, ny = data.shape[:2]
    interpolated = np.full((nx, ny, mesh.siglayz.shape[1]), np.nan)

    xi, yi = np.nonzero(~mask)
    if not xi.size:
        return interpolated

    if noisy:
        print(f'{subname}: interpolate {xi.size} water columns onto {mesh.siglayz.shape[1]} sigma layers', flush=True)

    _, nearest = find_nearest_point(mesh.lon, mesh.lat, lon[xi, yi], lat[xi, yi])

    empty = 0
    for x, y, node in zip(xi, yi, nearest):
        interpolated[x, y, :] = interp_column(depth[x, y, :], data[x, y, :], mesh.siglayz[node, :], method=method)
        if np.isnan(interpolated[x, y, 0]):
            empty += 1

    if empty:
        warn(f'{empty} unmasked water columns have no valid data and have been left undefined.')

    return interpolated
