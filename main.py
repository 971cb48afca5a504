"""Print the section board held by a running warehouse service."""

import argparse
import asyncio
import logging
import sys

from occupancy import HttpWarehouseBackend, SectionStore
from occupancy.errors import OccupancyError
from occupancy.status import SectionStatus

MARKERS = {
    SectionStatus.GREEN: "+",
    SectionStatus.YELLOW: "~",
    SectionStatus.ORANGE: "-",
    SectionStatus.RED: "x",
}


def render_grid(store: SectionStore, letter: str) -> str:
    """Return a text drawing of warehouse ``letter``."""

    grid = store.grid(letter)
    labels = dict(store.row_labels(letter))
    cells: dict[tuple[int, int], str] = {}
    for section in store.sections(letter):
        if section.position is None:
            continue
        text = f"{section.key.token}{MARKERS[section.status]}"
        cell = tuple(section.position)
        cells[cell] = text if cell not in cells else "##"
    width = max([len(t) for t in cells.values()] + [3])

    lines = []
    for y in range(grid.rows()):
        row = []
        for x in range(grid.width):
            if x == grid.aisle:
                row.append("|".center(width))
            else:
                row.append(cells.get((x, y), ".").ljust(width))
        lines.append(" ".join(row) + (f"  {labels[y]}" if y in labels else ""))
    return "\n".join(lines)


async def _show(url: str, letter: str | None) -> int:
    store = SectionStore(HttpWarehouseBackend(url))
    await store.hydrate()
    if letter:
        warehouse = store.get_warehouse(letter)
        print(f"{warehouse.letter}: {warehouse.name} ({warehouse.type.value})")
        print(render_grid(store, letter))
        return 0
    for warehouse in store.warehouses:
        state = store.warehouse_status(warehouse.letter).value
        print(f"{warehouse.letter}  {warehouse.name:<20} {warehouse.type.value:<8} {state}")
    summary = store.summary()
    print(
        f"available: indoor {summary['indoor']}% | "
        f"outdoor {summary['outdoor']}% | total {summary['total']}%"
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("letter", nargs="?", help="warehouse to draw")
    parser.add_argument("--url", default=None, help="service URL")
    args = parser.parse_args(argv)
    try:
        return asyncio.run(_show(args.url, args.letter))
    except OccupancyError as exc:
        logging.error("%s", exc)
        return 1


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(main())
