from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from unittest import TestCase

import numpy as np
import numpy.testing as test

from PyFVSeed.errors import EmptyTimeSeriesError
from PyFVSeed.utilities import general, time


class UtilitiesTest(TestCase):

    def test_julian_day(self):
        input_date = [2000, 7, 20, 10, 58, 12]
        actual_julian_day = 2451745.9570833333
        actual_modified_julian_day = actual_julian_day - 2400000.5
        calculated_julian_day = time.julian_day(input_date)
        calculated_modified_julian_day = time.julian_day(input_date, mjd=True)
        # Get some floating point issues here, so do an almost_equal.
        test.assert_almost_equal(actual_julian_day, calculated_julian_day)
        test.assert_almost_equal(actual_modified_julian_day, calculated_modified_julian_day)

    def test_julian_day_datetime(self):
        from_list = time.julian_day([2000, 7, 20, 10, 58, 12], mjd=True)
        from_datetime = time.julian_day(datetime(2000, 7, 20, 10, 58, 12), mjd=True)
        test.assert_almost_equal(from_list, from_datetime)

    def test_julian_day_multiple(self):
        dates = [[1858, 11, 17, 0], [1858, 11, 18, 12]]
        test.assert_almost_equal(time.julian_day(dates, mjd=True), [0, 1.5])

    def test_parse_time_units(self):
        scale, origin = time.parse_time_units('seconds since 2006-01-01 00:00:00')
        test.assert_almost_equal(scale, 1 / 86400)
        test.assert_equal(origin, [2006, 1, 1, 0, 0, 0])
        scale, origin = time.parse_time_units('hours since 2000-01-01T12:30:00Z')
        test.assert_almost_equal(scale, 1 / 24)
        test.assert_equal(origin, [2000, 1, 1, 12, 30, 0])
        scale, origin = time.parse_time_units('days since 1858-11-17')
        test.assert_equal(scale, 1)
        test.assert_equal(origin, [1858, 11, 17, 0, 0, 0])

    def test_parse_bad_time_units(self):
        with self.assertRaises(ValueError):
            time.parse_time_units('furlongs since 2000-01-01')
        with self.assertRaises(ValueError):
            time.parse_time_units('nonsense')

    def test_mjd_from_units(self):
        test.assert_almost_equal(time.mjd_from_units([0, 1.5], 'days since 1858-11-17 00:00:00'), [0, 1.5])
        start = time.julian_day([2006, 1, 1], mjd=True)
        mjd = time.mjd_from_units([0, 43200, 86400], 'seconds since 2006-01-01 00:00:00')
        test.assert_almost_equal(mjd, start + np.array([0, 0.5, 1]))

    def test_nearest_time_index(self):
        times = [0, 1, 2]
        test.assert_equal(time.nearest_time_index(times, 1.6), 2)
        test.assert_equal(time.nearest_time_index(times, 1.4), 1)
        # Outside the range of times we silently get the closest end.
        test.assert_equal(time.nearest_time_index(times, -5), 0)
        test.assert_equal(time.nearest_time_index(times, 100), 2)

    def test_nearest_time_index_tie(self):
        test.assert_equal(time.nearest_time_index([0, 1, 2], 0.5), 0)
        test.assert_equal(time.nearest_time_index([0, 1, 1, 2], 1), 1)

    def test_nearest_time_index_empty(self):
        with self.assertRaises(EmptyTimeSeriesError):
            time.nearest_time_index([], 10)
        with self.assertRaises(EmptyTimeSeriesError):
            time.nearest_time_index([np.nan, np.nan], 10)

    def test_nearest_time_index_nan_target(self):
        # The series is fine, so don't blame it.
        with self.assertRaises(ValueError) as context:
            time.nearest_time_index([0, 1, 2], np.nan)
        self.assertNotIsInstance(context.exception, EmptyTimeSeriesError)

    def test_chunk_indices(self):
        pieces = general.chunk_indices(np.arange(10), 3)
        test.assert_equal(len(pieces), 3)
        test.assert_equal(np.concatenate(pieces), np.arange(10))
        # No empty chunks.
        test.assert_equal(len(general.chunk_indices(np.arange(2), 4)), 2)

    def test_pool_map(self):
        serial = general.pool_map(abs, [-1, -2, 3])
        with ThreadPoolExecutor(2) as pool:
            parallel = general.pool_map(abs, [-1, -2, 3], pool=pool)
        test.assert_equal(serial, [1, 2, 3])
        test.assert_equal(parallel, serial)

    def test_passive_store(self):
        store = general.PassiveStore()
        store.a = 1
        store._hidden = 2
        test.assert_equal(list(store), ['a'])
