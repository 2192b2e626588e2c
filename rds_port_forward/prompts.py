"""Thin wrappers around questionary that turn a cancelled prompt into an exception."""

import questionary
from questionary import Choice, Separator

from .exceptions import InteractionAborted

__all__ = ["Choice", "Separator", "select", "confirm", "text", "number"]


def _ask(question):
    result = question.ask()
    if result is None:
        raise InteractionAborted()
    return result


def select(message, choices):
    return _ask(questionary.select(message, choices=choices))


def confirm(message, default=True) -> bool:
    return bool(_ask(questionary.confirm(message, default=default)))


def text(message, required=False) -> str:
    validate = None
    if required:

        def validate(value):
            return True if value.strip() else "Please enter a value"

    return _ask(questionary.text(message, validate=validate)).strip()


def _validate_port(value):
    value = value.strip()
    if value.isdigit() and 0 < int(value) < 65536:
        return True
    return "Please enter a port number between 1 and 65535"


def number(message) -> str:
    return _ask(questionary.text(message, validate=_validate_port)).strip()
