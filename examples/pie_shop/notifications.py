from __future__ import annotations

from typing import Protocol


class Notifier(Protocol):
    channel: str

    def send(self, recipient: str, message: str) -> str: ...


class EmailNotifier:
    channel = "email"

    def __init__(self) -> None:
        self.sent: list[str] = []

    def send(self, recipient: str, message: str) -> str:
        receipt = f"email to {recipient}: {message}"
        self.sent.append(receipt)
        return receipt


class SmsNotifier:
    channel = "sms"

    def __init__(self) -> None:
        self.sent: list[str] = []

    def send(self, recipient: str, message: str) -> str:
        receipt = f"sms to {recipient}: {message[:160]}"
        self.sent.append(receipt)
        return receipt
