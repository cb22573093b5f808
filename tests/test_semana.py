from datetime import date

import pytest

from residencias.errors import FetchFailure, PersistFailure, SiteNotFound, ValidationFailure
from residencias.semana import WeekBoard

SEMANA = date(2024, 6, 3)


@pytest.fixture
def board(site_store, checklist_store):
    return WeekBoard(site_store, checklist_store, week='2024-06-05')


def test_board_normalizes_week_to_monday(board):
    assert board.week_start == SEMANA


def test_load_creates_missing_rows(board, checklist_store):
    assert board.load() is True
    assert sorted(board.index) == ['A', 'B', 'C']
    assert len(board.created) == 3
    assert board.index['A'].prep_date == date(2024, 6, 5)
    assert board.index['C'].prep_date == date(2024, 5, 31)
    assert len(checklist_store.rows) == 3


def test_second_load_creates_nothing(board, site_store, checklist_store):
    board.load()
    again = WeekBoard(site_store, checklist_store, week=SEMANA)
    again.load()
    assert again.created == []
    assert checklist_store.writes == 1
    assert again.index == board.index


def test_edit_persists_and_folds_canonical_row(board, checklist_store):
    board.load()
    board.edit('A', {'weekly_changes_done': True})
    row = board.edit('A', {'notes': 'dieta blanda'})
    assert row.weekly_changes_done is True
    assert row.notes == 'dieta blanda'
    assert board.index['A'] is checklist_store.rows[('A', SEMANA)]


def test_failed_edit_leaves_index_untouched(board, checklist_store):
    board.load()
    before = board.index['A']
    checklist_store.fail_writes = True
    with pytest.raises(PersistFailure):
        board.edit('A', {'reviewed': True})
    assert board.index['A'] is before


def test_failed_fetch_keeps_prior_state(board, checklist_store):
    board.load()
    index = board.index
    checklist_store.fail_reads = True
    with pytest.raises(FetchFailure):
        board.load()
    assert board.index is index


def test_failed_creation_does_not_build_index(board, checklist_store):
    checklist_store.fail_writes = True
    with pytest.raises(PersistFailure):
        board.load()
    assert board.index == {}


def test_stale_load_is_discarded(board, checklist_store):
    # La semana cambia (medianoche) mientras la carga está en curso
    checklist_store.on_list = lambda week: board.move_to('2024-06-10') if week == SEMANA else None
    assert board.load() is False
    assert board.week_start == date(2024, 6, 10)
    assert board.index == {}


def test_roll_over_moves_and_reloads(board):
    board.load()
    assert board.roll_over(date(2024, 6, 9)) is False
    assert board.roll_over(date(2024, 6, 10)) is True
    assert board.week_start == date(2024, 6, 10)
    assert all(e.week_start == date(2024, 6, 10) for e in board.index.values())


def test_edit_unknown_site(board):
    board.load()
    with pytest.raises(SiteNotFound):
        board.edit('Z', {'notes': 'x'})


def test_bump_workload_clamps(board, site_store):
    board.load()
    assert board.bump_workload('A', 'patients', 1).patients == 11
    board.update_workload('A', {'patients': 0})
    assert board.bump_workload('A', 'patients', -1).patients == 0
    assert board.bump_workload('A', 'floors', -5).floors == 1
    assert site_store.sites['A'].floors == 1


def test_bump_workload_rejects_other_fields(board):
    board.load()
    with pytest.raises(ValidationFailure):
        board.bump_workload('A', 'name', 1)


def test_view_groups_and_summary(board):
    board.load()
    board.edit('B', {'weekly_changes_done': True, 'reviewed': True, 'packaged': True})
    view = board.view(today=date(2024, 6, 4))
    assert view['week_start'] == '2024-06-03'
    assert view['summary'] == {'prepared': 1, 'due_for_delivery': 3, 'pending': 2}
    martes = view['groups']['Martes']
    assert martes[0]['site']['name'] == 'El Pinar'
    assert martes[0]['status'] == 'completo'
    assert martes[0]['delivers_today'] is True
