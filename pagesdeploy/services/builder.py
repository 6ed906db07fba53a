"""Documentation builder that drives ``cargo doc``."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
import subprocess
from typing import Mapping

from pagesdeploy.models.deploy import DeployConfig, DeployError, ErrorKind


logger = logging.getLogger(__name__)

# docs.rs-style cfg plus unstable rustdoc output options; these need a nightly toolchain.
RUSTDOC_FLAGS: tuple[str, ...] = ("--cfg", "docsrs", "-Z", "unstable-options", "--generate-link-to-definition")


@dataclass(slots=True)
class CargoDocBuilder:
    """Generate the crate documentation, streaming the tool output to the console."""

    rustdoc_flags: tuple[str, ...] = RUSTDOC_FLAGS

    def build(self, config: DeployConfig) -> None:
        """Run the build command and verify the crate's doc directory was produced."""

        command = list(config.build_command)
        # Only cargo understands --target-dir; custom commands must honour the resolved directory themselves.
        if config.target_dir is not None and _is_cargo(command[0]):
            command += ["--target-dir", str(config.target_dir)]

        env = self._build_env(os.environ)
        logger.info("Building documentation: %s", " ".join(command), extra={"event": "build"})

        try:
            result = subprocess.run(command, cwd=config.source_dir, env=env, check=False)
        except OSError as exc:
            raise DeployError(ErrorKind.BUILD, f"Unable to run {command[0]}: {exc}") from exc

        if result.returncode != 0:
            raise DeployError(
                ErrorKind.BUILD,
                f"Documentation build failed with exit status {result.returncode}",
            )

        doc_dir = config.doc_dir
        if not doc_dir.is_dir():
            raise DeployError(ErrorKind.BUILD, f"Expected generated documentation at {doc_dir}")

        logger.info("Documentation generated in %s", doc_dir, extra={"event": "build"})

    def _build_env(self, base: Mapping[str, str]) -> dict[str, str]:
        env = dict(base)
        existing = env.get("RUSTDOCFLAGS", "").strip()
        flags = " ".join(self.rustdoc_flags)
        env["RUSTDOCFLAGS"] = f"{existing} {flags}".strip()
        return env


def _is_cargo(executable: str) -> bool:
    name = Path(executable).name
    return name == "cargo" or name == "cargo.exe"
