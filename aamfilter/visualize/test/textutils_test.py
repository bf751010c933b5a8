from aamfilter.visualize import print_progress


def test_print_progress_passes_items_through(capsys):
    assert list(print_progress(range(4), prefix='- Scoring')) == [0, 1, 2, 3]
    assert '- Scoring' in capsys.readouterr().out


def test_print_progress_silent(capsys):
    items = print_progress(iter('abc'), n_items=3, verbose=False)
    assert list(items) == ['a', 'b', 'c']
    assert capsys.readouterr().out == ''
