"""Shared test doubles for subprocess and HTTP traffic."""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import subprocess
import typing as typ

import httpx


@dataclasses.dataclass(slots=True)
class ScriptedResult:
    """Outcome returned for a matching command."""

    stdout: str | bytes = ""
    returncode: int = 0
    stderr: str = ""


@dataclasses.dataclass(slots=True)
class SubprocessRecorder:
    """Captured ``subprocess.run`` invocations and scripted responses.

    ``script`` maps a command prefix to a result, or to a list of results
    consumed one per call (the last one repeats). The longest matching
    prefix wins; unmatched commands succeed with empty output.
    """

    calls: list[tuple[str, ...]] = dataclasses.field(default_factory=list)
    inputs: list[str | bytes | None] = dataclasses.field(default_factory=list)
    kwargs: list[dict[str, object]] = dataclasses.field(default_factory=list)
    script: dict[tuple[str, ...], ScriptedResult | list[ScriptedResult]] = (
        dataclasses.field(default_factory=dict)
    )

    def respond(
        self,
        *prefix: str,
        stdout: str | bytes = "",
        returncode: int = 0,
    ) -> None:
        """Script the result for commands starting with ``prefix``."""
        self.script[prefix] = ScriptedResult(stdout=stdout, returncode=returncode)

    def respond_sequence(self, *prefix: str, results: list[ScriptedResult]) -> None:
        """Script successive results for commands starting with ``prefix``."""
        self.script[prefix] = list(results)

    def _lookup(self, args: tuple[str, ...]) -> ScriptedResult:
        matches = [prefix for prefix in self.script if args[: len(prefix)] == prefix]
        if not matches:
            return ScriptedResult()
        entry = self.script[max(matches, key=len)]
        if isinstance(entry, list):
            return entry.pop(0) if len(entry) > 1 else entry[0]
        return entry

    def __call__(
        self, args: cabc.Sequence[str], **kwargs: object
    ) -> subprocess.CompletedProcess[typ.Any]:
        """Record the call and return its scripted result."""
        command = tuple(str(arg) for arg in args)
        self.calls.append(command)
        self.inputs.append(typ.cast("str | bytes | None", kwargs.get("input")))
        self.kwargs.append(dict(kwargs))
        scripted = self._lookup(command)
        if kwargs.get("check") and scripted.returncode != 0:
            raise subprocess.CalledProcessError(
                scripted.returncode, list(args), scripted.stdout, scripted.stderr
            )
        return subprocess.CompletedProcess(
            args=list(args),
            returncode=scripted.returncode,
            stdout=scripted.stdout,
            stderr=scripted.stderr,
        )

    def commands_starting_with(self, *prefix: str) -> list[tuple[str, ...]]:
        """Return recorded commands that start with ``prefix``."""
        return [call for call in self.calls if call[: len(prefix)] == prefix]

    def has_call(self, *prefix: str) -> bool:
        """Return True when any recorded command starts with ``prefix``."""
        return bool(self.commands_starting_with(*prefix))


Route = cabc.Callable[[httpx.Request], httpx.Response] | httpx.Response


def make_http_client(
    routes: dict[str, Route], requests: list[httpx.Request] | None = None
) -> httpx.Client:
    """Return an ``httpx.Client`` answering from ``routes`` keyed by URL.

    Unknown URLs get a 404. Served requests are appended to ``requests``.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        route = routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, httpx.Response):
            return httpx.Response(
                route.status_code, content=route.content, headers=route.headers
            )
        return route(request)

    return httpx.Client(transport=httpx.MockTransport(handler))
