from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError


class SecurityConfigError(ValueError):
    """Raised when the security YAML is missing or invalid."""


class AuthConfig(BaseModel):
    authorization_header: str = "Authorization"
    bearer_prefix: str = "Bearer"
    session_cookie: str = "hms_session"


class DefaultRule(BaseModel):
    auth_required: bool = True


class RouteRule(BaseModel):
    path: str
    methods: list[str] = Field(default_factory=lambda: ["GET"])
    auth_required: bool | None = None

    def normalized_methods(self) -> set[str]:
        return {m.upper() for m in self.methods}


class SecurityConfigModel(BaseModel):
    auth: AuthConfig = Field(default_factory=AuthConfig)
    default: DefaultRule = Field(default_factory=DefaultRule)
    routes: list[RouteRule] = Field(default_factory=list)


@dataclass(frozen=True)
class EffectiveRule:
    """Fully-resolved authentication rule (defaults applied) for a request."""

    auth_required: bool


def _path_template_to_regex(path_template: str) -> re.Pattern[str]:
    # Convert "/api/patients/{id}" -> r"^/api/patients/[^/]+$"
    regex = re.sub(r"\{[^/]+\}", r"[^/]+", path_template)
    return re.compile(rf"^{regex}$")


class SecurityConfig:
    """
    Runtime helper around validated config + route matching.

    Only answers "must this route carry a credential?". What an authenticated
    caller may do is decided by hms.authz.
    """

    def __init__(self, model: SecurityConfigModel):
        self.model = model

        self._exact_rules: dict[str, list[RouteRule]] = {}
        for r in self.model.routes:
            self._exact_rules.setdefault(r.path, []).append(r)
        self._compiled_rules = [(_path_template_to_regex(r.path), r) for r in self.model.routes]

    @property
    def auth(self) -> AuthConfig:
        return self.model.auth

    def match(self, path: str, method: str) -> EffectiveRule:
        method = method.upper()
        default = self.model.default

        # 1) exact path match
        for candidate in self._exact_rules.get(path, []):
            if method in candidate.normalized_methods():
                return _effective(candidate, default)

        # 2) template match
        for regex, candidate in self._compiled_rules:
            if method in candidate.normalized_methods() and regex.match(path):
                return _effective(candidate, default)

        # 3) no match -> defaults
        return EffectiveRule(auth_required=default.auth_required)


def _effective(rule: RouteRule, default: DefaultRule) -> EffectiveRule:
    return EffectiveRule(auth_required=default.auth_required if rule.auth_required is None else rule.auth_required)


def load_security_config(path: Path) -> SecurityConfig:
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SecurityConfigError(f"Cannot read security config: {path}") from exc

    raw: dict[str, Any] = yaml.safe_load(raw_text) or {}
    if not isinstance(raw, dict) or "security" not in raw:
        raise SecurityConfigError(f"Missing top-level 'security' key in config: {path}")

    try:
        model = SecurityConfigModel.model_validate(raw["security"] or {})
    except ValidationError as exc:
        raise SecurityConfigError(f"Invalid security config {path}: {exc}") from exc
    return SecurityConfig(model)
