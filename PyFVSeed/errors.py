""" Things which can go wrong when re-gridding regular data onto an unstructured grid. """


class InputShapeError(ValueError):
    """ Coordinate, data or mesh arrays have inconsistent or incompatible dimensions. """
    pass


class EmptyTimeSeriesError(ValueError):
    """ There are no times from which to pick a snapshot. """
    pass


class UnrecoverableGapError(RuntimeError):
    """ No node on the unstructured grid has a valid value from which to fill the gaps. """
    pass
