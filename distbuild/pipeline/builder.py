"""
Package build operation.

Runs the external package builder for one unit. Output is inherited from
this process so an active tee_output() captures it.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from distbuild.config import DEFAULT_BUILD_COMMAND, BuildConfig
from distbuild.errors import BuildError

logger = logging.getLogger(__name__)


class PackageBuilder:
    """
    Builds units found under `source_dir` into `package_dir`.

    The build command is a template; `{source}`, `{dest}`, `{image}`,
    `{version}` and `{unit}` are substituted per unit.
    """

    def __init__(
        self,
        source_dir: Path,
        package_dir: Path,
        image_name: str,
        version: str,
        local: bool = False,
        command: Optional[Sequence[str]] = None,
    ):
        self.source_dir = Path(source_dir).resolve()
        self.package_dir = Path(package_dir).resolve()
        self.image_name = image_name
        self.version = version
        self.local = local
        self.command = list(command or DEFAULT_BUILD_COMMAND)

    @classmethod
    def from_config(cls, config: BuildConfig) -> PackageBuilder:
        return cls(
            source_dir=config.source_dir,
            package_dir=config.package_dir,
            image_name=config.image_name,
            version=config.version,
            local=config.local_image,
            command=config.build_command,
        )

    def command_for(self, unit: str) -> List[str]:
        values = {
            "source": str(self.source_dir / unit),
            "dest": str(self.package_dir),
            "image": self.image_name,
            "version": self.version,
            "unit": unit,
        }
        cmd = [arg.format(**values) for arg in self.command]
        if self.local:
            cmd.append("-local")
        return cmd

    def build(self, unit: str) -> None:
        """
        Build one unit.

        Raises:
            BuildError: if the builder cannot be started or exits non-zero
        """
        print("Building", unit, flush=True)
        self.package_dir.mkdir(parents=True, exist_ok=True)
        cmd = self.command_for(unit)
        logger.debug(f"Command: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, cwd=str(self.source_dir / unit))
        except OSError as e:
            raise BuildError(unit, e) from e

        if result.returncode != 0:
            raise BuildError(unit, f"{cmd[0]} exited with code {result.returncode}")

    __call__ = build
