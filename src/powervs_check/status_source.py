"""Sources of the JSON status documents read by the phase watcher."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from powervs_check.errors import StatusSourceError


@runtime_checkable
class StatusSource(Protocol):
    """Returns the parsed JSON document produced by a status command."""

    async def fetch(
        self,
        command: Sequence[str],
        *,
        kubeconfig: Path | None = None,
    ) -> Mapping[str, Any]:
        ...


def _parse(payload: bytes | str, origin: str) -> Mapping[str, Any]:
    try:
        document = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise StatusSourceError(f"{origin} did not return valid JSON: {exc.msg}") from exc
    if not isinstance(document, Mapping):
        raise StatusSourceError(f"{origin} did not return a JSON object")
    return document


class OcStatusSource:
    """Runs the OpenShift CLI with ``KUBECONFIG`` pointed at the cluster."""

    def __init__(
        self,
        *,
        binary: str = "oc",
        timeout_seconds: float = 300.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._binary = binary
        self._timeout_seconds = timeout_seconds
        self._logger = logger or logging.getLogger("powervs_check.status_source")

    async def fetch(
        self,
        command: Sequence[str],
        *,
        kubeconfig: Path | None = None,
    ) -> Mapping[str, Any]:
        args = [self._binary, *command]
        rendered = " ".join(args)
        env = dict(os.environ)
        if kubeconfig is not None:
            env["KUBECONFIG"] = str(kubeconfig)

        self._logger.debug("Running %s (KUBECONFIG=%s)", rendered, kubeconfig)
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError as exc:
            raise StatusSourceError(f"could not run command {rendered}: {exc}") from exc

        try:
            async with asyncio.timeout(self._timeout_seconds):
                stdout, stderr = await process.communicate()
        except TimeoutError as exc:
            raise StatusSourceError(
                f"command {rendered} did not finish within {self._timeout_seconds:g}s"
            ) from exc
        finally:
            # Also reached when an enclosing phase timeout cancels the fetch.
            if process.returncode is None:
                process.kill()
                await process.wait()

        if process.returncode != 0:
            message = stderr.decode(errors="replace").strip()
            raise StatusSourceError(
                f"could not run command {rendered}: exit status {process.returncode}: {message}"
            )
        return _parse(stdout, rendered)


def saved_document_name(command: Sequence[str]) -> str:
    """File name a saved document is replayed from, e.g. ``ibmpowervscluster.json``."""
    args = list(command)
    try:
        resource = args[args.index("get") + 1]
    except (ValueError, IndexError):
        raise StatusSourceError(f"cannot derive a saved document for {' '.join(args)}") from None
    return f"{resource.replace('/', '-')}.json"


class FileStatusSource:
    """Replays documents saved from earlier runs instead of calling the cluster."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    async def fetch(
        self,
        command: Sequence[str],
        *,
        kubeconfig: Path | None = None,
    ) -> Mapping[str, Any]:
        del kubeconfig
        path = self._directory / saved_document_name(command)
        try:
            payload = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError as exc:
            raise StatusSourceError(f"saved document not found: {path}") from exc
        return _parse(payload, str(path))
