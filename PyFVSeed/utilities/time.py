import re
from datetime import datetime

import jdcal
import numpy as np

from PyFVSeed.errors import EmptyTimeSeriesError


# Seconds, minutes and hours to days.
_time_scale = {'second': 1 / 86400, 'minute': 1 / 1440, 'hour': 1 / 24, 'day': 1}


def julian_day(gregorianDateTime, mjd=False):
    """
    For a given gregorian date format (YYYY,MM,DD,hh,mm,ss) get the
    Julian Day.

    Output array precision is the same as input precision, so if you
    want sub-day precision, make sure your input data are floats.

    Parameters
    ----------
    gregorianDateTime : ndarray, datetime.datetime
        Array of Gregorian dates formatted as [[YYYY, MM, DD, hh, mm,
        ss],...,[YYYY, MM, DD, hh, mm, ss]]. If hh, mm, ss are missing
        they are assumed to be zero (i.e. midnight). A single
        datetime.datetime is also accepted.
    mjd : boolean, optional
        Set to True to convert output from Julian Day to Modified Julian
        Day.

    Returns
    -------
    jd : ndarray
        Modified Julian Day or Julian Day (depending on the value of
        mjd).

    Notes
    -----
    Julian Day epoch: 12:00 January 1, 4713 BC, Monday
    Modified Julain Day epoch: 00:00 November 17, 1858, Wednesday

    """

    if isinstance(gregorianDateTime, datetime):
        gregorianDateTime = [gregorianDateTime.year, gregorianDateTime.month, gregorianDateTime.day,
                             gregorianDateTime.hour, gregorianDateTime.minute,
                             gregorianDateTime.second + gregorianDateTime.microsecond / 1e6]

    gregorianDateTime = np.asarray(gregorianDateTime, dtype=float)
    single = gregorianDateTime.ndim == 1
    gregorianDateTime = np.atleast_2d(gregorianDateTime)
    nr, nc = gregorianDateTime.shape

    if nc < 6:
        # We're missing some aspect of the time. Let's assume it's the least
        # significant value (i.e. seconds first, then minutes, then hours).
        # Set missing values to zero.
        gregorianDateTime = np.hstack([gregorianDateTime, np.zeros((nr, 6 - nc))])

    julian, modified = np.empty(nr), np.empty(nr)
    for ii, (year, month, day, hour, minute, second) in enumerate(gregorianDateTime):
        julian[ii], modified[ii] = jdcal.gcal2jd(int(year), int(month), int(day))
        modified[ii] += (hour + (minute / 60.0) + (second / 3600.0)) / 24.0
        julian[ii] += modified[ii]

    if mjd:
        result = modified
    else:
        result = julian

    if single:
        return result[0]
    else:
        return result


def parse_time_units(units):
    """
    Split a CF-style time units string (e.g. 'seconds since 2006-01-01 00:00:00') into a scale factor to days and
    the date of the zero point.

    Parameters
    ----------
    units : str
        The time units. Seconds, minutes, hours and days are understood. A missing time of day is midnight.

    Returns
    -------
    scale : float
        Multiply offsets in `units' by this to get days.
    origin : list
        The zero point as [YYYY, MM, DD, hh, mm, ss].

    """

    try:
        period, reference = [i.strip() for i in re.split(r'\bsince\b', units, maxsplit=1)]
    except ValueError:
        raise ValueError(f"Unable to parse time units `{units}'")

    period = period.lower().rstrip('s')
    if period not in _time_scale:
        raise ValueError(f"Unsupported time unit `{period}' in `{units}'")

    # Drop any time zone suffix (we assume UTC anyway) and split date from time.
    reference = reference.replace('T', ' ').rstrip('Z').split()
    ymd = [int(i) for i in reference[0].split('-')]
    hms = [0, 0, 0]
    if len(reference) > 1:
        hms = [float(i) for i in reference[1].split(':')]
        hms += [0] * (3 - len(hms))

    return _time_scale[period], ymd + hms


def mjd_from_units(offsets, units):
    """
    Convert time offsets relative to the zero point in `units' to Modified Julian Day.

    Parameters
    ----------
    offsets : np.ndarray
        Time offsets (e.g. the contents of a netCDF `time' variable).
    units : str
        CF-style time units (see parse_time_units).

    Returns
    -------
    mjd : np.ndarray
        The offsets as Modified Julian Days.

    """

    scale, origin = parse_time_units(units)

    return julian_day(origin, mjd=True) + np.asarray(offsets, dtype=float) * scale


def nearest_time_index(times, target):
    """
    Find the index of the time in `times' closest to `target'.

    There is no interpolation in time and no bounds checking: a `target' outside the range of `times' silently gives
    the index of the nearest end of the series. Where two times are equally close, the first one wins.

    Parameters
    ----------
    times : np.ndarray
        Monotonically non-decreasing times (e.g. Modified Julian Days).
    target : float
        The time to look for, in the same units as `times'.

    Returns
    -------
    index : int
        Index into `times'.

    Example
    -------
    >>> nearest_time_index([0, 1, 2], 1.6)
    2

    """

    times = np.ravel(np.asarray(times, dtype=float))
    if times.size == 0:
        raise EmptyTimeSeriesError('Cannot find the nearest time in an empty time series.')

    if np.isnan(target):
        raise ValueError('Cannot find the time nearest to a NaN target.')

    difference = np.abs(times - target)
    if np.all(np.isnan(difference)):
        raise EmptyTimeSeriesError('No valid (non-NaN) times in the time series.')

    return int(np.nanargmin(difference))
