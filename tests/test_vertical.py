from unittest import TestCase

import numpy as np
import numpy.testing as test

from PyFVSeed.errors import InputShapeError
from PyFVSeed.grid import Mesh
from PyFVSeed.vertical import interp_column, grid_vert_interp


class VerticalTest(TestCase):

    def setUp(self):
        # Surface to seabed, negative down.
        self.depth = np.array([0, -10, -20])
        self.values = np.array([20, 15, 10])

    def test_interp_column(self):
        interpolated = interp_column(self.depth, self.values, [-5, -25, 5])
        test.assert_almost_equal(interpolated, [17.5, 10, 20])

    def test_interp_column_order(self):
        # The order of the source column doesn't matter.
        interpolated = interp_column(self.depth[::-1], self.values[::-1], [-5, -15])
        test.assert_almost_equal(interpolated, [17.5, 12.5])

    def test_interp_column_nan(self):
        values = np.array([20, np.nan, 10])
        test.assert_almost_equal(interp_column(self.depth, values, [-10]), [15])
        self.assertTrue(np.all(np.isnan(interp_column(self.depth, np.full(3, np.nan), [-1, -2]))))

    def test_interp_column_pchip(self):
        # Linear data stay linear with the monotonic cubic.
        interpolated = interp_column(self.depth, self.values, [-5, -25, 5], method='pchip')
        test.assert_almost_equal(interpolated, [17.5, 10, 20])
        values = np.array([20, 19, 10])
        interpolated = interp_column(self.depth, values, np.linspace(0, -20, 21), method='pchip')
        self.assertTrue(np.all(np.diff(interpolated) <= 0))

    def test_interp_column_bad_method(self):
        with self.assertRaises(ValueError):
            interp_column(self.depth, self.values, [-5], method='nearest')

    def test_grid_vert_interp(self):
        mesh = Mesh([0, 10], [0, 0], siglayz=[[-1, -5], [-2, -10]])
        lon = np.array([[0.1], [9.9], [5.5]])
        lat = np.zeros((3, 1))
        data = np.tile(self.values, (3, 1, 1)).astype(float)
        depth = np.tile(self.depth, (3, 1, 1)).astype(float)
        mask = np.array([[False], [False], [True]])
        interpolated = grid_vert_interp(mesh, lon, lat, data, depth, mask)
        test.assert_equal(interpolated.shape, (3, 1, 2))
        # Each column uses the sigma depths of its nearest node.
        test.assert_almost_equal(interpolated[0, 0], [19.5, 17.5])
        test.assert_almost_equal(interpolated[1, 0], [19, 15])
        self.assertTrue(np.all(np.isnan(interpolated[2, 0])))

    def test_grid_vert_interp_bad_shape(self):
        mesh = Mesh([0, 10], [0, 0], siglayz=[[-1, -5], [-2, -10]])
        data = np.zeros((3, 1, 3))
        with self.assertRaises(InputShapeError):
            grid_vert_interp(mesh, np.zeros((3, 1)), np.zeros((3, 1)), data, np.zeros((3, 1, 2)), np.zeros((3, 1)))
        with self.assertRaises(InputShapeError):
            grid_vert_interp(mesh, np.zeros((2, 1)), np.zeros((3, 1)), data, data, np.zeros((3, 1)))
