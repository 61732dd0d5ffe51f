from concurrent.futures import ThreadPoolExecutor
from unittest import TestCase

import numpy as np
import numpy.testing as test

from PyFVSeed.errors import InputShapeError, UnrecoverableGapError
from PyFVSeed.grid import Mesh, sigma_layer_depths, find_nearest_point, fill_undefined_nodes


class MeshTest(TestCase):

    def test_sigma_layer_depths(self):
        siglayz = sigma_layer_depths([10, 20], [0, -0.5, -1])
        test.assert_almost_equal(siglayz, [[0, -5, -10], [0, -10, -20]])

    def test_mesh_from_depths(self):
        mesh = Mesh([0, 1], [50, 51], h=[10, 20], siglay=[-0.25, -0.75])
        test.assert_equal(mesh.dims.node, 2)
        test.assert_equal(mesh.dims.siglay, 2)
        test.assert_almost_equal(mesh.siglayz, [[-2.5, -7.5], [-5, -15]])
        test.assert_equal(mesh.lon, [0, 1])
        test.assert_equal(mesh.lat, [50, 51])

    def test_mesh_bad_shapes(self):
        with self.assertRaises(InputShapeError):
            Mesh([0, 1], [50], siglayz=np.zeros((2, 3)))
        with self.assertRaises(InputShapeError):
            Mesh([0, 1], [50, 51], siglayz=np.zeros((3, 3)))
        with self.assertRaises(InputShapeError):
            Mesh([0, 1], [50, 51])

    def test_find_nearest_point(self):
        x = np.array([0, 1, 0, 1, 0, 1, 2, 2, 2])
        y = np.array([0, 0, 1, 1, 2, 2, 0, 1, 2])
        target_x, target_y = 0.5, 0.75
        dist, index = find_nearest_point(x, y, np.array([target_x]), np.array([target_y]))
        test.assert_equal(index, [2])
        test.assert_almost_equal(dist, [np.hypot(0.5, 0.25)])


class FillUndefinedTest(TestCase):

    def test_fill_nearest(self):
        # A and B have data; C is closer to A.
        x = np.array([0, 10, 1])
        y = np.array([0, 0, 0])
        temp = np.array([[10, 12], [20, 22], [np.nan, np.nan]])
        filled, = fill_undefined_nodes(x, y, temp)
        test.assert_equal(filled[2], [10, 12])
        test.assert_equal(filled[:2], temp[:2])

    def test_fill_tie_break(self):
        # Node 0 is equidistant from nodes 1 and 2, so the lower index wins.
        x = np.array([0, 1, -1])
        y = np.array([0, 0, 0])
        temp = np.array([[np.nan, np.nan], [1, 2], [3, 4]])
        filled, = fill_undefined_nodes(x, y, temp)
        test.assert_equal(filled[0], [1, 2])

        temp = np.array([[3, 4], [1, 2], [np.nan, np.nan]])
        x = np.array([-1, 1, 0])
        filled, = fill_undefined_nodes(x, y, temp)
        test.assert_equal(filled[2], [3, 4])

    def test_fill_whole_profile(self):
        # All layers of all fields come from the same donor.
        x = np.array([0, 5, 2, 4])
        y = np.array([0, 0, 0, 0])
        temp = np.array([[1, 2, 3], [4, 5, 6], [np.nan] * 3, [np.nan] * 3])
        salt = np.array([[31, 32, 33], [34, 35, 36], [np.nan] * 3, [np.nan] * 3])
        temp_filled, salt_filled = fill_undefined_nodes(x, y, temp, salt)
        test.assert_equal(temp_filled[2], temp[0])
        test.assert_equal(salt_filled[2], salt[0])
        test.assert_equal(temp_filled[3], temp[1])
        test.assert_equal(salt_filled[3], salt[1])
        self.assertFalse(np.any(np.isnan(temp_filled)))
        self.assertFalse(np.any(np.isnan(salt_filled)))

    def test_fill_leaves_input_alone(self):
        x = np.array([0, 1])
        y = np.array([0, 0])
        temp = np.array([[1.0], [np.nan]])
        fill_undefined_nodes(x, y, temp)
        self.assertTrue(np.isnan(temp[1, 0]))

    def test_fill_nothing_to_do(self):
        temp = np.array([[1.0, 2.0], [3.0, 4.0]])
        filled, = fill_undefined_nodes([0, 1], [0, 0], temp)
        test.assert_equal(filled, temp)

    def test_fill_unrecoverable(self):
        temp = np.full((3, 2), np.nan)
        with self.assertRaises(UnrecoverableGapError):
            fill_undefined_nodes([0, 1, 2], [0, 0, 0], temp)

    def test_fill_inconsistent_layers(self):
        # A NaN below a valid surface value can't be filled.
        temp = np.array([[1.0, np.nan], [3.0, 4.0]])
        with self.assertRaises(UnrecoverableGapError):
            fill_undefined_nodes([0, 1], [0, 0], temp)

    def test_fill_inconsistent_fields(self):
        # A complete first field doesn't let NaNs in a later one through.
        temp = np.array([[1.0, 2.0], [3.0, 4.0]])
        salt = np.array([[31.0, 32.0], [np.nan, np.nan]])
        with self.assertRaises(UnrecoverableGapError):
            fill_undefined_nodes([0, 1], [0, 0], temp, salt)

    def test_fill_bad_shape(self):
        with self.assertRaises(InputShapeError):
            fill_undefined_nodes([0, 1], [0, 0], np.zeros((3, 2)))
        with self.assertRaises(InputShapeError):
            fill_undefined_nodes([0, 1], [0], np.zeros((2, 2)))

    def test_fill_parallel(self):
        rng = np.random.default_rng(0)
        x, y = rng.uniform(0, 10, (2, 500))
        temp = rng.uniform(5, 15, (500, 4))
        temp[rng.uniform(size=500) < 0.2, :] = np.nan
        serial, = fill_undefined_nodes(x, y, temp)
        with ThreadPoolExecutor(4) as pool:
            parallel, = fill_undefined_nodes(x, y, temp, pool=pool)
        test.assert_array_equal(serial, parallel)
        self.assertFalse(np.any(np.isnan(serial)))
