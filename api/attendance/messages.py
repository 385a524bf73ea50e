"""
SMS texts sent to attendees.
"""

from __future__ import annotations

CONFIRMATION_TEMPLATE = """
Olá {first_name}! Obrigado por confirmar presença no evento {event}.

📅 Data: 20 de Dezembro
🕗 Hora: 8h00
📍 Local: Sala de Conferência do Shopping Popular (Camama)

Para mais informações: 942 218 877 | 953 990 348

Contamos com a sua presença!
Equipe {event}
""".strip()

REGISTRATION_TEMPLATE = "Olá {first_name}! Obrigado por confirmar presença na Conferência {event}."


def first_name(full_name: str) -> str:
    parts = (full_name or "").split()
    return parts[0] if parts else ""


def confirmation_message(*, name: str, event: str) -> str:
    return CONFIRMATION_TEMPLATE.format(first_name=first_name(name), event=event)


def registration_message(*, name: str, event: str) -> str:
    return REGISTRATION_TEMPLATE.format(first_name=first_name(name), event=event)
