"""Link targets for diagram labels.

The URL templates contain a single ``{name}`` placeholder which is replaced
verbatim by the label text. No quoting is applied.
"""
from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path

PLACEHOLDER = "{name}"

DEFAULT_PROJECT_URL = "https://github.com/KernelHaven/{name}/"
DEFAULT_JOB_URL = "https://jenkins.sse.uni-hildesheim.de/view/KernelHaven/job/{name}/"
DEFAULT_SENTINEL = "ProjectName"
DEFAULT_TARGET = "_blank"

# Environment variable → field name
_ENV_OVERRIDES: dict[str, str] = {
    "LINKS_PROJECT_URL": "project_url",
    "LINKS_JOB_URL": "job_url",
    "LINKS_SENTINEL": "sentinel",
}


class ConfigError(ValueError):
    """Invalid link template configuration."""


@dataclass(frozen=True)
class LinkTemplates:
    project_url: str = DEFAULT_PROJECT_URL
    job_url: str = DEFAULT_JOB_URL
    sentinel: str = DEFAULT_SENTINEL
    target: str = DEFAULT_TARGET

    def project_link(self, name: str) -> str:
        return self.project_url.replace(PLACEHOLDER, name)

    def job_link(self, name: str) -> str:
        return self.job_url.replace(PLACEHOLDER, name)

    def as_dict(self) -> dict[str, str]:
        return asdict(self)

    def with_overrides(self, **overrides: str | None) -> "LinkTemplates":
        """Return a copy with every non-empty override applied and validated."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigError(f"unknown template settings: {', '.join(unknown)}")
        values = {k: v for k, v in overrides.items() if v}
        out = replace(self, **values)
        out.validate()
        return out

    def validate(self) -> None:
        for key in ("project_url", "job_url"):
            value = getattr(self, key)
            if PLACEHOLDER not in value:
                raise ConfigError(f"{key} must contain the {PLACEHOLDER} placeholder: {value!r}")
        if not self.sentinel:
            raise ConfigError("sentinel must not be empty")


def load_templates(path: Path, base: LinkTemplates | None = None) -> LinkTemplates:
    """Read template overrides from a JSON object file.

    Keys are the :class:`LinkTemplates` field names; missing keys keep the
    value of ``base`` (the built-in defaults when ``base`` is ``None``).
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"cannot read templates file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"templates file {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"templates file {path} must contain a JSON object")
    bad = [k for k, v in data.items() if not isinstance(v, str)]
    if bad:
        raise ConfigError(f"template settings must be strings: {', '.join(sorted(bad))}")
    return (base or LinkTemplates()).with_overrides(**data)


def templates_from_env(base: LinkTemplates | None = None, environ: dict[str, str] | None = None) -> LinkTemplates:
    env = os.environ if environ is None else environ
    overrides = {field: env.get(var, "") for var, field in _ENV_OVERRIDES.items()}
    return (base or LinkTemplates()).with_overrides(**overrides)
