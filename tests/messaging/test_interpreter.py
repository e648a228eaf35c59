from __future__ import annotations

import logging

from src.db.sqlite_client import StoreError, claim_if_free, find_by_occupant, list_free
from src.messaging.interpreter import (
    MSG_HELP,
    MSG_NO_BOOKING,
    MSG_NONE_AVAILABLE,
    MSG_NONE_TO_RESCHEDULE,
    MSG_STORE_DOWN,
    handle,
    normalize_command,
)

DAY = "2024-01-02"
SLOTS = ["10:00", "11:00"]


def test_normalize_command():
    assert normalize_command("  AGENDAR \n") == "agendar"
    assert normalize_command(None) == ""


def test_agendar_lists_free_times_and_seeds_day(sqlite_db):
    reply = handle(sqlite_db, "p1", "agendar", DAY, SLOTS)
    assert reply.startswith("Horários disponíveis para 02/01: 10:00, 11:00.")
    assert list_free(sqlite_db, DAY) == SLOTS


def test_agendar_when_day_is_full(seeded_db):
    claim_if_free(seeded_db, DAY, "10:00", "a")
    claim_if_free(seeded_db, DAY, "11:00", "b")
    assert handle(seeded_db, "p1", "agendar", DAY, SLOTS) == MSG_NONE_AVAILABLE


def test_time_books_when_unbooked(seeded_db):
    reply = handle(seeded_db, "p1", "10:00", DAY, SLOTS)
    assert reply == "Agendamento confirmado para 02/01 às 10:00!"
    assert find_by_occupant(seeded_db, "p1").time == "10:00"


def test_replies_name_the_day_they_book_against(sqlite_db):
    other_day = "2024-03-15"
    assert "para 15/03:" in handle(sqlite_db, "p1", "agendar", other_day, SLOTS)
    assert handle(sqlite_db, "p1", "11:00", other_day, SLOTS) == (
        "Agendamento confirmado para 15/03 às 11:00!"
    )


def test_booking_raced_by_own_earlier_message(seeded_db, mocker):
    handle(seeded_db, "p1", "10:00", DAY, SLOTS)
    # the routing read ran before the earlier message committed its claim
    mocker.patch("src.messaging.interpreter.find_by_occupant", return_value=None)
    reply = handle(seeded_db, "p1", "11:00", DAY, SLOTS)
    assert reply == 'Você já tem um agendamento às 10:00. Responda "reagendar" para alterar.'
    assert list_free(seeded_db, DAY) == ["11:00"]


def test_time_taken_by_someone_else(seeded_db):
    claim_if_free(seeded_db, DAY, "10:00", "p2")
    assert handle(seeded_db, "p1", "10:00", DAY, SLOTS) == "Horário indisponível. Tente outro."


def test_time_not_in_calendar(seeded_db):
    reply = handle(seeded_db, "p1", "12:00", DAY, SLOTS)
    assert "12:00 não existe" in reply
    assert find_by_occupant(seeded_db, "p1") is None


def test_time_reschedules_when_booked(seeded_db):
    handle(seeded_db, "p1", "10:00", DAY, SLOTS)
    reply = handle(seeded_db, "p1", "11:00", DAY, SLOTS)
    assert reply == "Reagendamento concluído! Novo horário: 11:00."
    assert list_free(seeded_db, DAY) == ["10:00"]


def test_reschedule_onto_taken_slot_says_old_slot_was_released(seeded_db):
    handle(seeded_db, "p1", "10:00", DAY, SLOTS)
    claim_if_free(seeded_db, DAY, "11:00", "p2")
    reply = handle(seeded_db, "p1", "11:00", DAY, SLOTS)
    assert "(10:00) foi liberado" in reply
    assert '"agendar"' in reply
    assert find_by_occupant(seeded_db, "p1") is None


def test_reagendar_without_booking(seeded_db):
    assert handle(seeded_db, "p1", "reagendar", DAY, SLOTS) == MSG_NO_BOOKING


def test_reagendar_shows_current_booking(seeded_db):
    handle(seeded_db, "p1", "10:00", DAY, SLOTS)
    reply = handle(seeded_db, "p1", "reagendar", DAY, SLOTS)
    assert reply == (
        "Seu agendamento atual: 10:00. Horários disponíveis: 11:00. Responda com o novo horário."
    )


def test_reagendar_when_nothing_else_free(seeded_db):
    handle(seeded_db, "p1", "10:00", DAY, SLOTS)
    claim_if_free(seeded_db, DAY, "11:00", "p2")
    assert handle(seeded_db, "p1", "reagendar", DAY, SLOTS) == MSG_NONE_TO_RESCHEDULE


def test_unknown_text_gets_help(seeded_db):
    assert handle(seeded_db, "p1", "oi", DAY, SLOTS) == MSG_HELP
    assert handle(seeded_db, "p1", "", DAY, SLOTS) == MSG_HELP


def test_store_failure_is_logged_and_answered(seeded_db, mocker, caplog):
    mocker.patch(
        "src.messaging.interpreter.ensure_day_seeded", side_effect=StoreError("disk I/O error")
    )
    with caplog.at_level(logging.ERROR, logger="src.messaging.interpreter"):
        reply = handle(seeded_db, "p1", "agendar", DAY, SLOTS)
    assert reply == MSG_STORE_DOWN
    assert "Store failure" in caplog.text
    assert "disk I/O error" in caplog.text
