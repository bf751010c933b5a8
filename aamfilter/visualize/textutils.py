from menpo.visualize import print_progress as menpo_print_progress


def print_progress(iterable, prefix='', n_items=None, end_with_newline=True,
                   verbose=True):
    r"""
    Print the progress and remaining time needed to compute over an iterable.

    To use, wrap an existing iterable with this function before processing in
    a for loop (see example).

    This is `menpo.visualize.print_progress` with a `verbose` flag which allows
    the printing to be skipped altogether.

    Parameters
    ----------
    iterable : `iterable`
        An iterable that will be processed. The iterable is passed through by
        this function.
    prefix : `str`, optional
        If provided a string that will be prepended to the progress report.
    n_items : `int`, optional
        Allows for ``iterator`` to be a generator whose length will be assumed
        to be `n_items`. If not provided, then ``iterator`` needs to be
        `Sizable`.
    end_with_newline : `bool`, optional
        If ``False``, there is no new line at the end of the report, so the
        next print overwrites it.
    verbose : `bool`, optional
        Printing is performed only if set to ``True``.

    Examples
    --------
    This for loop: ::

        from time import sleep
        for i in print_progress(range(100), prefix='- Scoring '):
            sleep(1)

    prints a progress report of the form: ::

        - Scoring [=============       ] 70% (7/10) - 00:00:03 remaining
    """
    if verbose:
        for i in menpo_print_progress(iterable, prefix=prefix, n_items=n_items,
                                      end_with_newline=end_with_newline):
            yield i
    else:
        for i in iterable:
            yield i
