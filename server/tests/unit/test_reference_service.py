"""Unit tests for the booking reference generator."""

import logging

from railway_ledger.services.reference_service import DEFAULT_REFERENCE_FLOOR, ReferenceGenerator


def test_first_reference_follows_floor(tmp_path):
    """Test that a fresh counter issues the value after the floor."""
    generator = ReferenceGenerator(tmp_path / "pnr_counter.txt")

    assert generator.current == DEFAULT_REFERENCE_FLOOR
    assert generator.next() == str(DEFAULT_REFERENCE_FLOOR + 1)


def test_references_strictly_increase_and_persist(tmp_path):
    """Test that every reference is larger than the last and written to disk."""
    counter_path = tmp_path / "pnr_counter.txt"
    generator = ReferenceGenerator(counter_path)

    issued = [int(generator.next()) for _ in range(5)]

    assert issued == sorted(set(issued))
    assert counter_path.read_text(encoding="utf-8") == str(issued[-1])


def test_counter_survives_restart(tmp_path):
    """Test that a new generator continues after the persisted value."""
    counter_path = tmp_path / "pnr_counter.txt"
    first = ReferenceGenerator(counter_path)
    last_before_restart = int(first.next())
    first.next()

    restarted = ReferenceGenerator(counter_path)

    assert int(restarted.next()) > last_before_restart + 1


def test_non_numeric_counter_resets_to_floor(tmp_path, caplog):
    """Test that a corrupted counter file resets to the floor with a warning."""
    counter_path = tmp_path / "pnr_counter.txt"
    counter_path.write_text("not-a-number", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        generator = ReferenceGenerator(counter_path)

    assert generator.current == DEFAULT_REFERENCE_FLOOR
    assert "Reference counter corrupted - resetting to floor" in caplog.text


def test_counter_below_floor_resets(tmp_path, caplog):
    counter_path = tmp_path / "pnr_counter.txt"
    counter_path.write_text("42", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        generator = ReferenceGenerator(counter_path)

    assert generator.next() == str(DEFAULT_REFERENCE_FLOOR + 1)
    assert "out of range" in caplog.text


def test_empty_counter_file_starts_at_floor(tmp_path):
    counter_path = tmp_path / "pnr_counter.txt"
    counter_path.write_text("", encoding="utf-8")

    assert ReferenceGenerator(counter_path).current == DEFAULT_REFERENCE_FLOOR


def test_custom_floor(tmp_path):
    generator = ReferenceGenerator(tmp_path / "pnr_counter.txt", floor=500)

    assert generator.next() == "501"


def test_unwritable_counter_keeps_issuing(tmp_path, caplog):
    """Test that a failed counter write is logged and issuance continues."""
    generator = ReferenceGenerator(tmp_path / "missing" / "pnr_counter.txt")

    with caplog.at_level(logging.ERROR):
        first = generator.next()
        second = generator.next()

    assert int(second) == int(first) + 1
    assert "Failed to persist reference counter" in caplog.text


def test_ensure_above_advances_and_persists(tmp_path, caplog):
    """Test that the counter jumps past a recorded reference and saves the new value."""
    counter_path = tmp_path / "pnr_counter.txt"
    generator = ReferenceGenerator(counter_path)

    with caplog.at_level(logging.WARNING):
        generator.ensure_above(DEFAULT_REFERENCE_FLOOR + 7)

    assert generator.next() == str(DEFAULT_REFERENCE_FLOOR + 8)
    assert counter_path.read_text(encoding="utf-8") == str(DEFAULT_REFERENCE_FLOOR + 8)
    assert "Reference counter behind recorded bookings" in caplog.text


def test_ensure_above_never_moves_backwards(tmp_path):
    generator = ReferenceGenerator(tmp_path / "pnr_counter.txt")
    generator.next()
    generator.next()

    generator.ensure_above(DEFAULT_REFERENCE_FLOOR + 1)

    assert generator.current == DEFAULT_REFERENCE_FLOOR + 2
