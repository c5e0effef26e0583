#!/usr/bin/env python3

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class ExtractorConfig(BaseModel):
    """Configuration for an extraction run."""

    # Inputs
    source_files: list[str] = Field(default_factory=list)
    build_path: Path | None = None  # directory holding compile_commands.json
    extra_args: list[str] = Field(default_factory=list)  # appended to every compile command

    # Output
    output_file: Path | None = None  # stdout when unset

    # Naming and matching
    plain_function_names: bool = False
    include_blocks: bool = False

    # Frontend
    libclang_file: Path | None = None
    progress: bool = True

    def absolute_source_files(self) -> list[str]:
        """Source paths made absolute without resolving symlinks."""
        return [os.path.abspath(path) for path in self.source_files]

    def with_overrides(self, **overrides: Any) -> "ExtractorConfig":
        """Copy with every override that is not None applied."""
        update = {key: value for key, value in overrides.items() if value is not None}
        return self.model_validate({**self.model_dump(), **update})

    @classmethod
    def load_from_file(cls, config_path: Path) -> "ExtractorConfig":
        """Load configuration from a JSON or YAML file.

        Relative paths in the file are taken relative to the file's directory.
        """
        text = config_path.read_text()
        if config_path.suffix in (".yaml", ".yml"):
            args = yaml.safe_load(text) or {}
        else:
            args = json.loads(text)
        if not isinstance(args, dict):
            raise ValueError(f"Configuration in {config_path} must be a mapping")

        base_dir = config_path.parent
        for key in ("build_path", "output_file", "libclang_file"):
            if args.get(key):
                args[key] = str(base_dir / args[key])
        args["source_files"] = [str(base_dir / path) for path in args.get("source_files", [])]
        return cls.model_validate(args)

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to a JSON file."""
        data = self.model_dump(mode="json", exclude_none=True)
        config_path.write_text(json.dumps(data, indent=2))
