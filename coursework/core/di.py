from __future__ import annotations

__all__ = [
    "Closing",
    "Container",
    "Manage",
    "NotReady",
    "Provider",
    "Provide",
    "as_",
    "inject",
    "providers",
    "containers",
    "register_loader_containers",
]

import functools
import importlib.abc
import importlib.machinery
import sys
import types
import typing as t

import dependency_injector.containers as containers
import dependency_injector.providers as providers
import dependency_injector.wiring as wiring
from dependency_injector.containers import Container
from dependency_injector.providers import Provider
from dependency_injector.wiring import ClassGetItemMeta, Closing, Provide, TypeModifier

from coursework.lib.sentinel import NotReady

P = t.ParamSpec("P")
TReturn = t.TypeVar("TReturn")
TAs = t.TypeVar("TAs")
T = t.TypeVar("T")


def inject(fn: t.Callable[P, TReturn]) -> t.Callable[P, TReturn]:
    reference_injections, reference_closing = wiring._fetch_reference_injections(fn)  # pyright: ignore [reportPrivateUsage] noqa: E501
    patched = wiring._get_patched(fn, reference_injections, reference_closing)  # pyright: ignore [reportPrivateUsage] noqa: E501

    # route handlers keep their module globals so pydantic can resolve forward refs
    if fn.__module__.startswith("coursework.web") and hasattr(fn, "__globals__"):
        wrapper = functools.wraps(fn, updated=("__globals__",))
        return wrapper(patched)
    return patched


class Manage(object, metaclass=ClassGetItemMeta):
    """`Depends(di.Manage["storage.persistent.session"])` closes the resource when the request ends."""

    def __new__(cls, provider: Provider[T] | Container | str):
        return Closing[Provide[provider]]

    @classmethod
    def __class_getitem__(cls, item: Provider[T] | Container | str):
        return cls(item)


def as_(type_: t.Type[TAs]) -> TypeModifier:
    """Return custom type modifier."""
    # wiring.as_ has typing issues
    return TypeModifier(type_)


class AutoLoader(object):
    """
    Wires containers into modules as they are imported, optionally scoped to
    modules under the named packages
    """

    containers: dict[str | None, list[Container]]
    _path_hook: t.Callable[[str], importlib.abc.PathEntryFinder] | None = None

    def __init__(self) -> None:
        self.containers = {}

    def register_containers(self, *containers: Container, packages: t.Sequence[str] | None) -> None:
        for pkg in packages or [None]:
            self.containers.setdefault(pkg, []).extend(containers)
        self.install()

    def wire_module(self, module: types.ModuleType) -> None:
        for package, ls in self.containers.items():
            if package is None or module.__name__.startswith(package):
                for container in ls:
                    container.wire(modules=[module])

    @property
    def installed(self) -> bool:
        return self._path_hook in sys.path_hooks

    def install(self) -> None:
        if self.installed:
            return

        loader = self

        class SourceFileLoader(importlib.machinery.SourceFileLoader):
            def exec_module(self, module: types.ModuleType):
                super().exec_module(module)
                loader.wire_module(module)

        class SourcelessFileLoader(importlib.machinery.SourcelessFileLoader):
            def exec_module(self, module: types.ModuleType):
                super().exec_module(module)
                loader.wire_module(module)

        self._path_hook = importlib.machinery.FileFinder.path_hook(
            (importlib.machinery.ExtensionFileLoader, importlib.machinery.EXTENSION_SUFFIXES),
            (SourceFileLoader, importlib.machinery.SOURCE_SUFFIXES),
            (SourcelessFileLoader, importlib.machinery.BYTECODE_SUFFIXES),
        )
        sys.path_hooks.insert(0, self._path_hook)
        sys.path_importer_cache.clear()
        importlib.invalidate_caches()


_loader = AutoLoader()


def register_loader_containers(*containers: Container, packages: t.Sequence[str] | None = None) -> None:
    """Register containers in auto-wiring module loader."""
    _loader.register_containers(*containers, packages=packages)
