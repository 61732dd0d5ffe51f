import warnings

import numpy as np


class PassiveStore(object):
    """
    We ab(use) this class for nesting objects within a class.

    """
    def __init__(self):
        """ Make an empty object. """
        pass

    def __iter__(self):
        # Iterate over attributes inside this object which don't start with underscores.
        return (a for a in self.__dict__.keys() if not a.startswith('_'))

    def __eq__(self, other):
        # For easy comparison of classes.
        return self.__dict__ == other.__dict__


def chunk_indices(indices, chunks):
    """
    Split an array of indices into (at most) `chunks' contiguous pieces for handing out to a pool of workers.

    Parameters
    ----------
    indices : np.ndarray
        The indices to split.
    chunks : int
        Number of pieces to make. Empty pieces are dropped.

    Returns
    -------
    pieces : list
        List of np.ndarrays which, concatenated, give back `indices'.

    """

    return [piece for piece in np.array_split(np.asarray(indices), max(int(chunks), 1)) if piece.size]


def pool_map(func, iterable, pool=None):
    """
    Map `func' over `iterable' with the given pool, or in serial if we haven't been given one.

    Parameters
    ----------
    func : callable
        The worker function. Must be picklable (i.e. defined at module level) for process pools.
    iterable : iterable
        The arguments to pass to `func', one at a time.
    pool : multiprocessing.Pool, concurrent.futures.Executor, optional
        Anything with a `map' method. Omit to run in serial.

    Returns
    -------
    results : list
        The results in the same order as `iterable'.

    """

    if pool is None:
        return list(map(func, iterable))
    else:
        return list(pool.map(func, iterable))


def _warn(*args, **kwargs):
    """ Custom warning function which doesn't print the code to screen. """
    # Mainly taken inspiration from https://stackoverflow.com/questions/2187269.
    msg = warnings.WarningMessage(*args, **kwargs)
    print(f'{msg.message} ({msg.filename}:{msg.lineno})')


# Update the warnings module with the custom warning function and then make warn an object in this module.
warnings.showwarning = _warn
warn = warnings.warn
