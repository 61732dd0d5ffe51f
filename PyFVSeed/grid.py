"""
Tools for the unstructured grid onto which we interpolate.

"""

import os

import numpy as np
import scipy.spatial

from PyFVSeed.errors import InputShapeError, UnrecoverableGapError
from PyFVSeed.utilities.general import PassiveStore, chunk_indices, pool_map


class Mesh(object):
    """
    Class to hold the horizontal and vertical information for the nodes of an unstructured grid and the interpolated
    initial conditions for them.

    The interpolated data end up in `restart' (e.g. self.restart.temp and self.restart.salinity).

    """

    def __init__(self, lon, lat, siglayz=None, h=None, siglay=None, noisy=False):
        """
        Store the node positions and their sigma layer depths.

        Parameters
        ----------
        lon, lat : np.ndarray
            Node positions (node,).
        siglayz : np.ndarray, optional
            Sigma layer depths (node, siglay), negative down. If omitted, give `h' and `siglay' instead.
        h : np.ndarray, optional
            Water depth at the nodes (node,), positive down.
        siglay : np.ndarray, optional
            Sigma layer fractions (0 to -1) as (siglay,) for all nodes or (node, siglay) for each node.
        noisy : bool, optional
            Set to True to enable verbose output. Defaults to False.

        """

        self._noisy = noisy

        self.dims = PassiveStore()
        self.grid = PassiveStore()
        self.restart = PassiveStore()

        self.grid.lon = np.ravel(np.asarray(lon, dtype=float))
        self.grid.lat = np.ravel(np.asarray(lat, dtype=float))
        if self.grid.lon.shape != self.grid.lat.shape:
            raise InputShapeError(f'Node longitudes ({self.grid.lon.size}) and latitudes ({self.grid.lat.size}) '
                                  f'differ in size.')
        self.dims.node = len(self.grid.lon)

        if siglayz is None:
            if h is None or siglay is None:
                raise InputShapeError('Supply either the sigma layer depths or the water depth and sigma layers.')
            siglayz = sigma_layer_depths(h, siglay)

        siglayz = np.asarray(siglayz, dtype=float)
        if siglayz.ndim != 2 or siglayz.shape[0] != self.dims.node:
            raise InputShapeError(f'Sigma layer depths should be ({self.dims.node}, siglay), not {siglayz.shape}.')

        self.grid.siglayz = siglayz
        self.dims.siglay = siglayz.shape[1]

        if self._noisy:
            print(f'Mesh: {self.dims.node} nodes, {self.dims.siglay} sigma layers')

    # Shorthands, mainly for the vertical interpolation functions.
    @property
    def lon(self):
        return self.grid.lon

    @property
    def lat(self):
        return self.grid.lat

    @property
    def siglayz(self):
        return self.grid.siglayz


def sigma_layer_depths(h, siglay):
    """
    Calculate the sigma layer depths for each node.

    Parameters
    ----------
    h : np.ndarray
        Water depth (node,), positive down.
    siglay : np.ndarray
        Sigma layer fractions (0 at the surface, -1 at the seabed), either (siglay,) or (node, siglay).

    Returns
    -------
    siglayz : np.ndarray
        Sigma layer depths (node, siglay), negative down.

    """

    h = np.ravel(np.asarray(h, dtype=float))
    siglay = np.asarray(siglay, dtype=float)
    if siglay.ndim == 1:
        siglay = np.tile(siglay, (len(h), 1))
    if siglay.shape[0] != len(h):
        raise InputShapeError(f'Sigma layers {siglay.shape} do not match the number of depths ({len(h)}).')

    return h[:, np.newaxis] * siglay


def find_nearest_point(grid_x, grid_y, x, y):
    """
    Given some point(s) `x' and `y', find the nearest grid node in `grid_x' and `grid_y'.

    Parameters
    ----------
    grid_x, grid_y : np.ndarray
        Coordinates within which to search for the nearest point given in `x' and `y'.
    x, y : np.ndarray
        List of coordinates to find the closest value in `grid_x' and `grid_y'.

    Returns
    -------
    distance : ndarray
        Distance between each point in `x' and `y' and the closest value in `grid_x' and `grid_y'.
    index : np.ndarray
        List of indices of `grid_x' and `grid_y' for the closest positions to those given in `x', `y'.

    """

    if np.shape(x) != np.shape(y):
        raise InputShapeError('Number of points in X and Y do not match')

    grid_xy = np.array((np.ravel(grid_x), np.ravel(grid_y))).T
    search_xy = np.array((np.ravel(x), np.ravel(y))).T

    kdtree = scipy.spatial.cKDTree(grid_xy)
    distance, index = kdtree.query(search_xy)

    return distance, index


def _nearest_donor_worker(args):
    """
    Pass me to a pool's map() to find the closest valid node to each of the given invalid nodes.

    Parameters
    ----------
    args : tuple
        (x, y, invalid, valid), with (x, y) the node positions and the others node indices.

    Returns
    -------
    donors : np.ndarray
        For each node in `invalid', the closest node in `valid'. The lowest index wins a tie.

    """

    x, y, invalid, valid = args
    donors = np.empty(len(invalid), dtype=int)
    for i, node in enumerate(invalid):
        # Squared distances are enough for the minimum. argmin gives the first of any equal values and valid is in
        # ascending order, so ties go to the lowest node index.
        distance = (x[valid] - x[node])**2 + (y[valid] - y[node])**2
        donors[i] = valid[np.argmin(distance)]

    return donors


def fill_undefined_nodes(x, y, *fields, pool=None, noisy=False):
    """
    Replace the NaN profiles left by interpolation (i.e. nodes outside the source data) with the profile from the
    nearest node which has valid data.

    The NaN nodes are identified from the surface layer of the first field only; we assume all layers (and all
    fields) have NaNs in the same (horizontal) places. The whole profile is copied from a single donor node for every
    field.

    Parameters
    ----------
    x, y : np.ndarray
        Node positions (node,).
    fields : np.ndarray
        One or more arrays (node, siglay) to fill.
    pool : multiprocessing.Pool, concurrent.futures.Executor, optional
        Something with a `map' method to spread the search over. Omit to run in serial.
    noisy : bool, optional
        Set to True to enable verbose output. Defaults to False.

    Returns
    -------
    filled : list
        Copies of `fields' with the NaN nodes filled.

    """

    subname = 'fill_undefined_nodes'

    x = np.ravel(np.asarray(x, dtype=float))
    y = np.ravel(np.asarray(y, dtype=float))
    if x.shape != y.shape:
        raise InputShapeError(f'Node x ({x.size}) and y ({y.size}) differ in size.')

    filled = [np.array(field, dtype=float) for field in fields]
    if not filled:
        return filled
    for field in filled:
        if field.ndim != 2 or field.shape[0] != len(x):
            raise InputShapeError(f'Fields should be ({len(x)}, siglay), not {field.shape}.')

    nodes = np.arange(len(x))
    invalid = nodes[np.isnan(filled[0][:, 0])]
    valid = nodes[~np.isnan(filled[0][:, 0])]

    if noisy:
        print(f'{subname}: {len(invalid)} of {len(x)} nodes to fill', flush=True)

    if invalid.size:
        if not valid.size:
            raise UnrecoverableGapError('No valid interpolated values anywhere on the grid: the source data do not '
                                        'overlap the grid at all.')

        # Each invalid node is independent of the others, so we can farm them out in chunks.
        chunks = 1 if pool is None else (os.cpu_count() or 1)
        args = [(x, y, piece, valid) for piece in chunk_indices(invalid, chunks)]
        donors = np.concatenate(pool_map(_nearest_donor_worker, args, pool))

        for field in filled:
            field[invalid, :] = field[donors, :]

    if any(np.any(np.isnan(field)) for field in filled):
        raise UnrecoverableGapError('Undefined values remain after filling: the undefined nodes differ between '
                                    'layers or fields.')

    return filled
