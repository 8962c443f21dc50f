#!/usr/bin/env python3
"""Walk the actor around the default origin and print what happens."""

import logging

from bitworld.core.config import WorldConfig
from bitworld.core.coordinates import GeoBounds
from bitworld.core.session import GameSession
from bitworld.metrics.survey import survey_window
from bitworld.persistence.store import KeyValueStore


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    config = WorldConfig()
    session = GameSession(config, kv=KeyValueStore(db_path=None))

    print("=== bitworld playtest ===")
    print(f"Origin: {config.origin_lat:.6f}, {config.origin_lon:.6f}")
    print(f"Tile: {config.tile_degrees} deg   Spawn p: {config.spawn_probability}")
    print()

    half = 5 * config.tile_degrees
    viewport = GeoBounds(
        config.origin_lat - half, config.origin_lon - half,
        config.origin_lat + half, config.origin_lon + half,
    )
    commands = session.report_viewport(viewport)
    print(f"Initial viewport: {len(commands)} overlays created")

    for direction in ["n", "e", "s", "s", "w", "w", "n"]:
        commands = session.step(direction)
        created = sum(1 for c in commands if c.op.value == "create")
        removed = sum(1 for c in commands if c.op.value == "remove")
        print(f"step {direction}: +{created} -{removed} overlays, "
              f"{len(session.viewport.active)} active")

    # Try every active cell near the actor: pick up, then place on a match.
    here = session.mapper.index_for_position(session.actor_position)
    for index in sorted(session.viewport.active):
        view = session.describe_cell(index)
        if view.distance_m > config.pickup_radius_meters:
            continue
        if view.pickup_enabled:
            result = session.pickup(index)
            print(f"Picked up {result.hand_value} at {index} ({view.distance_m:.1f} m)")
        elif view.place_enabled and view.state.token_value in (None, session.hand.value):
            result = session.place(index)
            print(f"Placed at {index}: cell={result.cell.token_value} +{result.points_delta} pts")

    print()
    print(f"Actor cell: {here}   Status: {session.status()}")

    i, j = here.i, here.j
    survey = survey_window(session.generator, (i - 50, i + 50, j - 50, j + 50))
    print(f"Survey of {survey.cell_count} cells: spawn fraction "
          f"{survey.spawn_fraction:.4f} (expected {config.spawn_probability})")
    print(f"Value counts: {survey.value_counts}")

    session.close()


if __name__ == "__main__":
    main()
