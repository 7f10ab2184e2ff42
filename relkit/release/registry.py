"""Package registry collaborator (npm)."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from relkit.core.config import NpmConfig
from relkit.core.result import Err, Ok, Result
from relkit.core.structured import as_str_dict, get_bool, get_str
from relkit.output.console import ConsoleProtocol
from relkit.release.errors import ReleaseError
from relkit.shell.runner import CommandRunner
from relkit.version.semver import parse_version

__all__ = ["NpmClient", "OtpPrompt", "PublishTask", "RegistryClient"]

logger = logging.getLogger(__name__)

PublishTask = Callable[[str], Result[bool, ReleaseError]]
OtpPrompt = Callable[[PublishTask], Result[bool, ReleaseError]]

_OTP_MARKERS = ("EOTP", "one-time pass")


class RegistryClient(Protocol):
    is_published: bool

    @property
    def enabled(self) -> bool: ...

    def publish(
        self,
        *,
        version: str,
        is_pre_release: bool,
        otp_prompt: OtpPrompt | None = None,
    ) -> Result[bool, ReleaseError]: ...

    def get_package_url(self) -> str | None: ...


class NpmClient:
    """Publishes the package at ``publish_path`` with ``npm publish``.

    Private packages (``"private": true``) are never published. Prerelease
    versions go to the dist-tag named after their prerelease id
    (``1.0.0-beta.1`` → ``beta``).
    """

    def __init__(
        self,
        options: NpmConfig,
        *,
        runner: CommandRunner,
        console: ConsoleProtocol,
        cwd: Path | None = None,
    ) -> None:
        self.options = options
        self.cwd = cwd or runner.cwd
        self.is_published = False
        self._runner = runner
        self._console = console

    def _manifest(self) -> dict[str, object]:
        path = self.cwd / self.options.publish_path / "package.json"
        try:
            obj: object = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.debug("could not read %s: %s", path, e)
            return {}
        return as_str_dict(obj) or {}

    @property
    def name(self) -> str | None:
        return get_str(self._manifest(), "name")

    @property
    def is_private(self) -> bool:
        return get_bool(self._manifest(), "private") is True

    @property
    def enabled(self) -> bool:
        return self.options.publish and not self.is_private

    def dist_tag(self, version: str, is_pre_release: bool) -> str:
        if is_pre_release:
            parsed = parse_version(version)
            if parsed is not None and parsed.prerelease and isinstance(parsed.prerelease[0], str):
                return parsed.prerelease[0]
        return self.options.tag

    def publish(
        self,
        *,
        version: str,
        is_pre_release: bool,
        otp_prompt: OtpPrompt | None = None,
    ) -> Result[bool, ReleaseError]:
        if self.is_private:
            self._console.info("Skipping npm publish (private package)")
            return Ok(False)

        tag = self.dist_tag(version, is_pre_release)

        def task(otp: str | None) -> Result[bool, ReleaseError]:
            return self._publish(tag, otp)

        result = task(self.options.otp)
        if isinstance(result, Err) and result.error.kind == "invalid-input" and otp_prompt is not None:
            return otp_prompt(task)
        return result

    def _publish(self, tag: str, otp: str | None) -> Result[bool, ReleaseError]:
        cmd = ["npm", "publish", self.options.publish_path, "--tag", tag]
        if self.options.access:
            cmd.extend(["--access", self.options.access])
        if otp:
            cmd.extend(["--otp", otp])

        result = self._runner.run(cmd, write=True, cwd=self.cwd)
        if isinstance(result, Err):
            details = result.error.details
            if any(marker in details for marker in _OTP_MARKERS):
                return Err(
                    ReleaseError(
                        kind="invalid-input",
                        message="npm publish requires a one-time password",
                        hint="Pass npm.otp or answer the OTP prompt",
                    )
                )
            return Err(ReleaseError(kind="publish-failed", message="npm publish failed", hint=details or None))

        if result.value is not None:
            self.is_published = True
        return Ok(True)

    def get_package_url(self) -> str | None:
        name = self.name
        return f"https://www.npmjs.com/package/{name}" if name else None
