import pytest

from occupancy.errors import ValidationError
from occupancy.grid import SectionGrid, index_to_position, position_to_index
from occupancy.records import Position, SectionKey


def make_grid():
    return SectionGrid(width=15, height=10, aisle=7)


def keys(letter, numbers):
    return [SectionKey(letter, n) for n in numbers]


def test_default_position_skips_aisle():
    grid = make_grid()
    assert grid.default_position(1) == Position(0, 0)
    assert grid.default_position(7) == Position(6, 0)
    assert grid.default_position(8) == Position(8, 0)
    assert grid.default_position(14) == Position(14, 0)
    assert grid.default_position(15) == Position(0, 1)


def test_fresh_warehouse_positions_are_unique_and_avoid_aisle():
    grid = make_grid()
    positions = [grid.default_position(n) for n in range(1, 201)]
    assert len(set(positions)) == len(positions)
    assert all(p.x != 7 for p in positions)
    assert all(0 <= p.x < 15 for p in positions)


def test_first_free_position_scans_rows():
    grid = make_grid()
    assert grid.first_free_position([]) == Position(0, 0)
    assert grid.first_free_position([(0, 0), (1, 0)]) == Position(2, 0)
    full_row = [(x, 0) for x in range(15) if x != 7]
    assert grid.first_free_position(full_row) == Position(0, 1)
    assert grid.first_free_position(full_row) == grid.first_free_position(full_row)


def test_hydrate_twice_is_stable():
    grid = make_grid()
    sections = [(k, None) for k in keys("A", range(1, 30))]
    first = grid.hydrate(sections)
    second = grid.hydrate(sections)
    assert first == second
    assert grid.hydrated


def test_incremental_hydrate_keeps_known_positions():
    grid = make_grid()
    grid.hydrate([(k, None) for k in keys("A", [1, 2, 3])])
    grid.move(SectionKey("A", 2), Position(5, 3))

    grid.hydrate([(k, None) for k in keys("A", [1, 2, 3, 4])])

    assert grid.position_of(SectionKey("A", 2)) == Position(5, 3)
    assert grid.position_of(SectionKey("A", 4)) == Position(3, 0)


def test_new_section_falls_back_to_first_free_cell():
    grid = make_grid()
    grid.hydrate([(k, None) for k in keys("A", [1, 2, 3])])
    grid.move(SectionKey("A", 1), Position(3, 0))

    grid.hydrate([(k, None) for k in keys("A", [1, 2, 3, 4])])

    assert grid.position_of(SectionKey("A", 4)) == Position(0, 0)


def test_stored_position_wins_and_missing_sections_are_dropped():
    grid = make_grid()
    grid.hydrate([(k, None) for k in keys("A", [1, 2])])
    grid.hydrate([(SectionKey("A", 1), Position(9, 4))])
    assert grid.positions == {SectionKey("A", 1): Position(9, 4)}


def test_stored_positions_outside_the_layout_are_replaced():
    grid = make_grid()
    grid.hydrate(
        [
            (SectionKey("A", 1), Position(7, 0)),
            (SectionKey("A", 2), Position(40, 0)),
            (SectionKey("A", 3), Position(2, 5)),
        ]
    )

    assert grid.positions == {
        SectionKey("A", 1): Position(0, 0),
        SectionKey("A", 2): Position(1, 0),
        SectionKey("A", 3): Position(2, 5),
    }


def test_invalid_stored_position_keeps_known_cell():
    grid = make_grid()
    grid.hydrate([(k, None) for k in keys("A", [1, 2])])
    grid.move(SectionKey("A", 2), Position(9, 3))

    grid.hydrate([(SectionKey("A", 1), None), (SectionKey("A", 2), Position(7, 3))])

    assert grid.position_of(SectionKey("A", 2)) == Position(9, 3)
    assert all(p.x != 7 for p in grid.positions.values())


def test_move_allows_shared_cells():
    grid = make_grid()
    grid.hydrate([(k, None) for k in keys("A", [1, 2])])
    grid.move(SectionKey("A", 1), grid.position_of(SectionKey("A", 2)))
    assert grid.position_of(SectionKey("A", 1)) == grid.position_of(SectionKey("A", 2))


@pytest.mark.parametrize("position", [(7, 0), (-1, 0), (0, -2), (15, 0)])
def test_move_rejects_invalid_cells(position):
    grid = make_grid()
    with pytest.raises(ValidationError):
        grid.move(SectionKey("A", 1), position)


def test_evict_and_rows():
    grid = make_grid()
    assert grid.rows() == 10
    grid.hydrate([(SectionKey("A", 1), Position(0, 12))])
    assert grid.rows() == 13
    assert grid.evict(SectionKey("A", 1)) == Position(0, 12)
    assert grid.evict(SectionKey("A", 1)) is None


def test_slot_index_helpers_agree():
    for idx in range(60):
        assert position_to_index(index_to_position(idx, 15, 7), 15, 7) == idx
    with pytest.raises(ValidationError):
        position_to_index(Position(7, 1), 15, 7)


def test_invalid_grid_configuration():
    with pytest.raises(ValidationError):
        SectionGrid(width=1, aisle=0)
    with pytest.raises(ValidationError):
        SectionGrid(width=10, aisle=10)
