from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from src.db.sqlite_client import StoreError, ensure_day_seeded, find_by_occupant
from src.engine.allocator import (
    BookOutcome,
    RescheduleOutcome,
    book,
    list_available,
    reschedule,
)
from src.engine.slot_policy import format_day, is_time_label

logger = logging.getLogger(__name__)

CMD_BOOK = "agendar"
CMD_RESCHEDULE = "reagendar"

MSG_HELP = 'Comandos: "agendar" para marcar um horário, "reagendar" para alterar um agendamento.'
MSG_NONE_AVAILABLE = "Nenhum horário disponível no momento."
MSG_NONE_TO_RESCHEDULE = "Nenhum horário disponível para reagendar."
MSG_NO_BOOKING = 'Você não tem nenhum agendamento. Deseja agendar? Responda "agendar".'
MSG_STORE_DOWN = "Não foi possível acessar a agenda agora. Tente novamente em alguns minutos."

BOOK_REPLIES = {
    BookOutcome.CONFIRMED: "Agendamento confirmado para {day} às {time}!",
    BookOutcome.SLOT_TAKEN: "Horário indisponível. Tente outro.",
    BookOutcome.SLOT_UNKNOWN: 'O horário {time} não existe na agenda. Responda "agendar" para ver as opções.',
    BookOutcome.ALREADY_BOOKED: (
        'Você já tem um agendamento às {held}. Responda "reagendar" para alterar.'
    ),
}

RESCHEDULE_REPLIES = {
    RescheduleOutcome.RESCHEDULED: "Reagendamento concluído! Novo horário: {time}.",
    RescheduleOutcome.NO_EXISTING_BOOKING: "Erro: Nenhum agendamento encontrado.",
    RescheduleOutcome.NEW_SLOT_UNKNOWN: (
        "Erro: o horário {time} não existe na agenda. Seu agendamento das {previous} foi mantido."
    ),
    RescheduleOutcome.RELEASE_FAILED: (
        'Erro ao liberar horário antigo; você está sem agendamento. Responda "agendar" para marcar.'
    ),
    RescheduleOutcome.NEW_SLOT_TAKEN: (
        "Seu horário anterior ({previous}) foi liberado, mas o horário {time} não está disponível. "
        'Responda "agendar" para marcar novamente.'
    ),
}


def normalize_command(text: str | None) -> str:
    return (text or "").strip().lower()


def _format_times(times: Sequence[str]) -> str:
    return ", ".join(times)


def _reply_book_list(conn: Any, date: str) -> str:
    times = list_available(conn, date)
    if not times:
        return MSG_NONE_AVAILABLE
    return (
        f"Horários disponíveis para {format_day(date)}: {_format_times(times)}. "
        "Responda com o horário desejado (ex.: 10:00)."
    )


def _reply_reschedule_list(conn: Any, phone: str, date: str) -> str:
    current = find_by_occupant(conn, phone)
    if current is None:
        return MSG_NO_BOOKING
    times = list_available(conn, date)
    if not times:
        return MSG_NONE_TO_RESCHEDULE
    return (
        f"Seu agendamento atual: {current.time}. "
        f"Horários disponíveis: {_format_times(times)}. Responda com o novo horário."
    )


def _reply_time(conn: Any, phone: str, date: str, time: str) -> str:
    if find_by_occupant(conn, phone) is not None:
        moved = reschedule(conn, phone, date, time)
        previous = moved.previous.time if moved.previous else ""
        return RESCHEDULE_REPLIES[moved.outcome].format(time=time, previous=previous)
    booked = book(conn, phone, date, time)
    held = booked.slot.time if booked.slot else ""
    return BOOK_REPLIES[booked.outcome].format(time=time, day=format_day(date), held=held)


def handle(
    conn: Any,
    phone: str,
    command: str,
    date: str,
    slot_times: Sequence[str],
) -> str:
    """Answer one inbound message from ``phone``.

    ``command`` is expected already normalized. Store failures are logged and
    answered with a generic retry message; nothing is raised to the caller.
    """
    try:
        ensure_day_seeded(conn, date, slot_times)
        if command == CMD_BOOK:
            return _reply_book_list(conn, date)
        if command == CMD_RESCHEDULE:
            return _reply_reschedule_list(conn, phone, date)
        if is_time_label(command):
            return _reply_time(conn, phone, date, command)
        return MSG_HELP
    except StoreError:
        logger.exception("Store failure handling %r from %s", command, phone)
        return MSG_STORE_DOWN
