"""Importable application classes used as service types by the test-suite."""

from __future__ import annotations

import abc
from typing import Any, Protocol, runtime_checkable

from diforge.container import BaseContainer


class Logger:
    def __init__(self) -> None:
        self.messages: list[str] = []

    def log(self, message: str) -> None:
        self.messages.append(message)


class FileLogger(Logger):
    def __init__(self, path: str = "app.log") -> None:
        super().__init__()
        self.path = path


class Transport(abc.ABC):
    @abc.abstractmethod
    def send(self, message: str) -> None: ...


class SmtpTransport(Transport):
    def __init__(self, host: str, port: int = 25) -> None:
        self.host = host
        self.port = port
        self.sent: list[str] = []

    def send(self, message: str) -> None:
        self.sent.append(message)


class Service:
    def __init__(self, logger: Logger) -> None:
        self.logger = logger


class Mailer:
    def __init__(self, transport: Transport, logger: Logger | None = None) -> None:
        self.transport = transport
        self.logger = logger
        self.recipients: list[str] = []
        self.level = 0

    def set_logger(self, logger: Logger) -> None:
        self.logger = logger

    def add_recipient(self, address: str) -> None:
        self.recipients.append(address)

    def _reset(self) -> None:
        self.recipients.clear()


class Widget:
    def __init__(self, name: str = "widget") -> None:
        self.name = name

    @classmethod
    def create(cls, name: str = "created") -> Widget:
        return cls(name)


class WidgetFactory:
    def make(self, name: str) -> Widget:
        return Widget(name)

    def make_untyped(self, name):  # noqa: ANN001, ANN201
        return Widget(name)


class Plain:
    pass


class Report:
    def __init__(self, title: str, *sections: str, **options: Any) -> None:
        self.title = title
        self.sections = sections
        self.options = options


class Point:
    def __init__(self, x: int = 0, y: int = 0, /, z: int = 0) -> None:
        self.coordinates = (x, y, z)


class Counter:
    @staticmethod
    def start(value: int = 0) -> Counter:
        counter = Counter()
        counter.value = value
        return counter

    def __init__(self) -> None:
        self.value = 0


class Gadget:
    pass


class Settings:
    debug = False


class AppContainer(BaseContainer):
    """Custom runtime base of generated containers."""

    def describe(self) -> str:
        return f"{type(self).__name__} with {len(self.parameters)} parameters"


def make_widget(name: str = "function") -> Widget:
    return Widget(name)


def make_unannotated(name="raw"):  # noqa: ANN001, ANN201
    return Widget(name)


def make_gadget(option: UnknownOption | None = None) -> Gadget:  # noqa: F821
    return Gadget()


def make_string() -> str:
    return "not a widget"


class Repository(Protocol):
    def load(self, key: str) -> str: ...


@runtime_checkable
class Sink(Protocol):
    def write(self, data: str) -> None: ...


class MemoryRepository:
    def __init__(self) -> None:
        self.items: dict[str, str] = {}
        self.written: list[str] = []

    def load(self, key: str) -> str:
        return self.items[key]

    def write(self, data: str) -> None:
        self.written.append(data)


def make_repository() -> Repository:
    return MemoryRepository()


def make_sink() -> Sink:
    return MemoryRepository()
