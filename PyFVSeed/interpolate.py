"""
Interpolate scattered (or regularly gridded) data onto the nodes of an unstructured grid with Sibson's natural
neighbour method.

The natural neighbour interpolant is what MATLAB's TriScatteredInterp(..., 'natural') gives: it honours the sample
values exactly, is smooth between them and is undefined (NaN) outside the convex hull of the samples. A NaN sample
(e.g. land) makes every position which has it as a natural neighbour NaN too.

"""

import os

import numpy as np
from scipy.spatial import Delaunay, QhullError

from PyFVSeed.errors import InputShapeError
from PyFVSeed.utilities.general import chunk_indices, pool_map


def circumcentre(v1, v2, v3):
    """
    Find the centre of the circle passing through three points.

    Parameters
    ----------
    v1, v2, v3 : np.ndarray
        Coordinate pairs (x, y) of the three points. Can be arrays of positions (n, 2).

    Returns
    -------
    centre : np.ndarray
        The circumcentre(s). Collinear points give non-finite values.

    """

    v1 = np.asarray(v1, dtype=float)
    b = np.asarray(v2, dtype=float) - v1
    c = np.asarray(v3, dtype=float) - v1

    b2 = np.sum(b**2, axis=-1)
    c2 = np.sum(c**2, axis=-1)
    d = 2 * (b[..., 0] * c[..., 1] - b[..., 1] * c[..., 0])

    with np.errstate(divide='ignore', invalid='ignore'):
        ux = (c[..., 1] * b2 - b[..., 1] * c2) / d
        uy = (b[..., 0] * c2 - c[..., 0] * b2) / d

    return v1 + np.stack((ux, uy), axis=-1)


def polygon_area(points):
    """
    Area of a convex polygon whose vertices are given in no particular order.

    Parameters
    ----------
    points : np.ndarray
        Vertices (n, 2). Repeated vertices are fine.

    Returns
    -------
    area : float
        The polygon area (zero for fewer than three points).

    """

    points = np.asarray(points, dtype=float)
    if len(points) < 3:
        return 0.0

    # Order anticlockwise about the mean position (which is inside a convex polygon) and then shoelace it.
    relative = points - points.mean(axis=0)
    order = np.argsort(np.arctan2(relative[:, 1], relative[:, 0]), kind='stable')
    x, y = relative[order].T

    return 0.5 * abs(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1)))


class NaturalNeighbourInterpolator(object):
    """
    Sibson natural neighbour interpolation of scattered 2D data.

    Call the object with the positions at which to interpolate. Positions outside the convex hull of the samples are
    NaN. Positions coincident with a sample get that sample's value. Positions on the hull itself (where the Sibson
    coordinates degenerate) get the linear interpolation along the hull edge, which is the limit of the natural
    neighbour value there.

    Samples with NaN values stay in the triangulation, so anywhere they are a natural neighbour is NaN as well.

    """

    def __init__(self, points, values, tolerance=1e-10):
        """
        Set up the triangulation of the sample points.

        Parameters
        ----------
        points : tuple, np.ndarray
            Sample positions, either as a tuple of arrays (x, y) or as an (n, 2) array.
        values : np.ndarray
            Sample values, (n,) or (n, k) for k fields sharing the same positions. NaN values are kept and propagate
            to the interpolated values. Samples with non-finite positions are ignored.
        tolerance : float, optional
            Relative tolerance for coincident points and points on the convex hull. Defaults to 1e-10.

        """

        if isinstance(points, (tuple, list)) and len(points) == 2:
            points = np.column_stack([np.ravel(i) for i in points])
        points = np.asarray(points, dtype=float)
        if points.ndim != 2 or points.shape[1] != 2:
            raise InputShapeError(f'Sample positions must be (n, 2), not {points.shape}.')

        values = np.asarray(values, dtype=float)
        self._single = values.ndim == 1
        if self._single:
            values = values[:, np.newaxis]
        if values.ndim != 2 or values.shape[0] != points.shape[0]:
            raise InputShapeError(f'Got {points.shape[0]} sample positions but values of shape {values.shape}.')

        valid = np.all(np.isfinite(points), axis=1)
        self.points = points[valid]
        self.values = values[valid]
        self.nfields = values.shape[1]
        self._tolerance = tolerance

        extent = np.ptp(self.points, axis=0).max() if len(self.points) else 0
        self._atol = tolerance * (extent if extent > 0 else 1)

        # Not enough to triangulate, so everything is outside the hull.
        self.tri = None
        if len(self.points) < 3:
            return

        try:
            self.tri = Delaunay(self.points)
        except QhullError as e:
            raise InputShapeError('Unable to triangulate the sample positions (are they colinear?).') from e

        vertices = [self.points[self.tri.simplices[:, i]] for i in range(3)]
        self._centres = circumcentre(*vertices)
        self._radius2 = np.sum((self._centres - vertices[0])**2, axis=1)

    def __call__(self, *xi):
        """
        Interpolate at the given positions.

        Parameters
        ----------
        xi : np.ndarray
            Either two arrays x, y, a tuple (x, y) or an (m, 2) array.

        Returns
        -------
        interpolated : np.ndarray
            Interpolated values, shaped like x (with a trailing axis of k fields if the values were (n, k)).

        """

        if len(xi) == 2:
            x, y = xi
        elif len(xi) == 1 and isinstance(xi[0], (tuple, list)) and len(xi[0]) == 2:
            x, y = xi[0]
        elif len(xi) == 1:
            positions = np.asarray(xi[0], dtype=float)
            x, y = positions[..., 0], positions[..., 1]
        else:
            raise InputShapeError('Give positions as x, y or as an (m, 2) array.')

        x, y = np.broadcast_arrays(np.asarray(x, dtype=float), np.asarray(y, dtype=float))
        shape = x.shape
        query = np.column_stack((x.ravel(), y.ravel()))

        interpolated = np.full((len(query), self.nfields), np.nan)
        if self.tri is not None:
            simplices = self.tri.find_simplex(query)
            for index in np.flatnonzero(simplices >= 0):
                interpolated[index] = self._interpolate_point(query[index], simplices[index])

        interpolated = interpolated.reshape(shape + (self.nfields,))
        if self._single:
            interpolated = interpolated[..., 0]

        return interpolated

    def _interpolate_point(self, point, simplex):
        vertices = self.tri.simplices[simplex]
        distance = np.hypot(*(self.points[vertices] - point).T)
        if distance.min() <= self._atol:
            return self.values[vertices[np.argmin(distance)]]

        weights = self.sibson_weights(point, simplex)
        if weights is None:
            return self._linear(point, simplex)

        indices, weights = weights
        return weights @ self.values[indices]

    def _linear(self, point, simplex):
        """ Barycentric (linear) interpolation within the given triangle. """
        transform = self.tri.transform[simplex]
        barycentric = transform[:2].dot(point - transform[2])
        barycentric = np.append(barycentric, 1 - barycentric.sum())

        return barycentric @ self.values[self.tri.simplices[simplex]]

    def natural_neighbours(self, point, simplex):
        """
        Find the triangles whose circumcircles contain `point' (i.e. those which would be removed if the point were
        added to the triangulation).

        Parameters
        ----------
        point : np.ndarray
            Position (x, y).
        simplex : int
            The triangle containing `point'.

        Returns
        -------
        triangles : list
            Sorted triangle indices, always including `simplex'.

        """

        cavity = {int(simplex)}
        visited = {int(simplex)}
        stack = [int(simplex)]
        while stack:
            current = stack.pop()
            for neighbour in self.tri.neighbors[current]:
                if neighbour == -1 or neighbour in visited:
                    continue
                visited.add(neighbour)
                distance2 = np.sum((self._centres[neighbour] - point)**2)
                if distance2 < self._radius2[neighbour] * (1 - self._tolerance):
                    cavity.add(neighbour)
                    stack.append(neighbour)

        return sorted(cavity)

    def sibson_weights(self, point, simplex):
        """
        Calculate the Sibson coordinates of `point' as the area each natural neighbour would lose to it.

        Parameters
        ----------
        point : np.ndarray
            Position (x, y).
        simplex : int
            The triangle containing `point'.

        Returns
        -------
        indices : np.ndarray
            Indices of the natural neighbours in self.points.
        weights : np.ndarray
            The normalised weights for each natural neighbour.

        Returns None when the weights are degenerate (the point lies on the convex hull).

        """

        cavity = self.natural_neighbours(point, simplex)
        in_cavity = set(cavity)

        # Walk the edges of the cavity, orienting each anticlockwise about the point.
        starts, ends = {}, {}
        for triangle in cavity:
            vertices = self.tri.simplices[triangle]
            for k, neighbour in enumerate(self.tri.neighbors[triangle]):
                if neighbour in in_cavity:
                    continue
                a, b = vertices[(k + 1) % 3], vertices[(k + 2) % 3]
                pa, pb = self.points[a] - point, self.points[b] - point
                cross = pa[0] * pb[1] - pa[1] * pb[0]
                if abs(cross) <= self._tolerance * np.hypot(*pa) * np.hypot(*pb):
                    return None
                if cross < 0:
                    a, b = b, a
                if a in starts or b in ends:
                    return None
                starts[a] = b
                ends[b] = a

        if set(starts) != set(ends):
            return None

        indices = np.array(sorted(starts))
        areas = np.empty(len(indices))
        for i, vertex in enumerate(indices):
            before, after = ends[vertex], starts[vertex]
            stolen = [circumcentre(point, self.points[before], self.points[vertex]),
                      circumcentre(point, self.points[vertex], self.points[after])]
            stolen += [self._centres[t] for t in cavity if vertex in self.tri.simplices[t]]
            areas[i] = polygon_area(np.asarray(stolen))

        total = areas.sum()
        if not np.isfinite(total) or total <= 0:
            return None

        return indices, areas / total


def _interp_nodes_worker(args):
    """
    Pass me to a pool's map() to interpolate all the layers of one or more fields onto some nodes with natural
    neighbours.

    Parameters
    ----------
    args : tuple
        (lon, lat, values, x, y), where values is an array (n, k) of the layers at (lon, lat) and (x, y) are the
        positions onto which to interpolate.

    Returns
    -------
    interp : np.ndarray
        The layers interpolated onto (x, y), shaped (len(x), k).

    """

    lon, lat, values, x, y = args
    # The positions are the same for every layer, so a single triangulation (and set of Sibson weights) does them all.
    interpolator = NaturalNeighbourInterpolator((lon, lat), values)
    return interpolator(x, y)


def interpolate_layers(lon, lat, profiles, x, y, pool=None, noisy=False):
    """
    Interpolate each vertical layer of the given (vertically interpolated) regularly gridded fields onto the
    unstructured grid positions.

    Every layer of every field is sampled at the same positions, so the triangulation is done once and shared by all
    of them. Land (NaN) samples stay in the triangulation: nodes next to them come back as NaN, ready for
    PyFVSeed.grid.fill_undefined_nodes.

    Parameters
    ----------
    lon, lat : np.ndarray
        Source positions (nx, ny) (e.g. from np.meshgrid(lon, lat, indexing='ij')).
    profiles : list
        List of arrays (nx, ny, nz), one per field, already interpolated onto the nz layers of the unstructured grid.
    x, y : np.ndarray
        Unstructured grid node positions.
    pool : multiprocessing.Pool, concurrent.futures.Executor, optional
        Something with a `map' method to spread the nodes over. Omit to run in serial.
    noisy : bool, optional
        Set to True to enable verbose output. Defaults to False.

    Returns
    -------
    interpolated : list
        List of arrays (node, nz), one per field. Nodes outside the source data or next to NaN source data are NaN.

    """

    subname = 'interpolate_layers'

    if np.shape(lon) != np.shape(lat):
        raise InputShapeError(f'Source longitude {np.shape(lon)} and latitude {np.shape(lat)} shapes differ.')
    if np.shape(x) != np.shape(y):
        raise InputShapeError(f'Node x {np.shape(x)} and y {np.shape(y)} shapes differ.')

    profiles = [np.asarray(profile) for profile in profiles]
    if not profiles:
        return []
    nz = profiles[0].shape[-1]
    for profile in profiles:
        if profile.shape[:-1] != np.shape(lon) or profile.shape[-1] != nz:
            raise InputShapeError(f'Vertical profiles of shape {profile.shape} do not match the source positions '
                                  f'{np.shape(lon)} with {nz} layers.')

    if noisy:
        print(f'{subname}: interpolate {len(profiles)} field(s) on {nz} layers onto {np.size(x)} nodes', flush=True)

    lon, lat = np.ravel(lon), np.ravel(lat)
    x, y = np.ravel(x), np.ravel(y)
    if not x.size:
        return [np.empty((0, nz)) for _ in profiles]

    # Columns are each field's layers in turn.
    values = np.column_stack([profile.reshape(-1, nz) for profile in profiles])

    chunks = 1 if pool is None else (os.cpu_count() or 1)
    args = [(lon, lat, values, x[piece], y[piece]) for piece in chunk_indices(np.arange(len(x)), chunks)]
    interpolated = np.concatenate(pool_map(_interp_nodes_worker, args, pool), axis=0)

    return [interpolated[:, fi * nz:(fi + 1) * nz] for fi in range(len(profiles))]
