"""
Invariant rules for dependency patches.

Every rule is a plain predicate over the raw patch text: no attempt is made
to parse the patch as code. A predicate returns True when the patch is
compliant.
"""

import fnmatch
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from patchgate.core.logging import get_logger
from patchgate.models.invariant import Severity

logger = get_logger(__name__)

SECURITY_PACKAGE_KEYWORDS = ("crypto", "auth", "jwt", "hash", "security", "tls", "ssl")
WEAK_CRYPTO_IDENTIFIERS = ("rapidhash", "md5", "sha1")

_PROCESS_ENV_RE = re.compile(r"\bprocess\.env\.[A-Z_]")
_GLOBAL_ASSIGNMENT_RE = re.compile(
    r"\b(?:global|window|globalThis)"
    r"(?:\.\w+|\s*\[\s*[\"'`]\w+[\"'`]\s*\])"
    r"\s*=(?!=)"
)
_IMPORT_RE = re.compile(r"(?:\bimport\b[^\"'\n]*?|\brequire\s*\(\s*)[\"']([^\"']+)[\"']")
_CONSOLE_LOG_RE = re.compile(r"\bconsole\.(?:log|debug|trace)\s*\(")
_STRUCTURED_LOG_RE = re.compile(r"\b(?:logger|log)\.(?:info|warn|error)\s*\(")
CONSOLE_EXEMPT_NAME_PATTERNS = (".test.", ".spec.", "debug.", "console.")


@dataclass(frozen=True)
class RuleContext:
    """Inputs available to a rule predicate."""

    patch_text: str
    package_name: str
    original_text: Optional[str] = None
    layers: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class InvariantRule:
    """A named governance check."""

    name: str
    description: str
    severity: Severity
    validate: Callable[[RuleContext], bool]
    tags: List[str] = field(default_factory=list)
    flag: Optional[str] = None  # feature flag that can switch the rule off


def is_security_package(package_name: str) -> bool:
    """Name-keyword heuristic for security-sensitive packages."""
    name = package_name.lower()
    return any(keyword in name for keyword in SECURITY_PACKAGE_KEYWORDS)


def no_direct_process_env(ctx: RuleContext) -> bool:
    """Raw environment reads may not grow relative to the original text."""
    before = len(_PROCESS_ENV_RE.findall(ctx.original_text or ""))
    after = len(_PROCESS_ENV_RE.findall(ctx.patch_text))
    return before >= after


def cryptographic_integrity(ctx: RuleContext) -> bool:
    if not is_security_package(ctx.package_name):
        return True
    return not any(weak in ctx.patch_text for weak in WEAK_CRYPTO_IDENTIFIERS)


def no_eval_usage(ctx: RuleContext) -> bool:
    return "eval(" not in ctx.patch_text and "new Function(" not in ctx.patch_text


def no_global_mutation(ctx: RuleContext) -> bool:
    return _GLOBAL_ASSIGNMENT_RE.search(ctx.patch_text) is None


def logging_consistency(ctx: RuleContext) -> bool:
    """
    Bare ``console.log``/``debug``/``trace`` calls need a structured logger
    call next to them, unless the package is itself test, debug or console
    tooling.
    """
    if not _CONSOLE_LOG_RE.search(ctx.patch_text):
        return True
    name = ctx.package_name.lower()
    if any(pattern in name for pattern in CONSOLE_EXEMPT_NAME_PATTERNS):
        return True
    return bool(_STRUCTURED_LOG_RE.search(ctx.patch_text))


def extract_package_name(import_path: str) -> Optional[str]:
    """
    Map an import specifier to its package.

    ``@scope/pkg/sub`` -> ``@scope/pkg``, ``pkg/sub`` -> ``pkg``,
    relative specifiers -> None.
    """
    if import_path.startswith(("./", "../", "/")):
        return None
    parts = import_path.split("/")
    if import_path.startswith("@"):
        return "/".join(parts[:2])
    return parts[0]


def strip_version(package_key: str) -> str:
    """``name@1.2.3`` -> ``name``; scoped names keep their leading ``@``."""
    at = package_key.rfind("@")
    return package_key[:at] if at > 0 else package_key


def find_package_layer(package_name: str, layers: Dict[str, Any]) -> Optional[str]:
    for layer_name, layer in (layers or {}).items():
        for pattern in (layer or {}).get("packages", []):
            if fnmatch.fnmatch(package_name, pattern):
                return layer_name
    return None


def dependency_boundary(ctx: RuleContext) -> bool:
    """
    Imports added by a patch must respect the configured layer boundaries.

    Passes when no layer configuration is given, enforcement is disabled, or
    the patched package is not assigned to a layer.
    """
    config = ctx.layers or {}
    if not (config.get("global_rules") or {}).get("enforce_layer_boundaries"):
        return True

    layers = config.get("layers") or {}
    own_package = strip_version(ctx.package_name)
    package_layer = find_package_layer(own_package, layers)
    if package_layer is None:
        logger.debug("Package %s not assigned to any layer", own_package)
        return True

    allowed = set((layers[package_layer] or {}).get("allowed_imports", []))
    for import_path in _IMPORT_RE.findall(ctx.patch_text):
        imported = extract_package_name(import_path)
        if not imported:
            continue
        import_layer = find_package_layer(imported, layers)
        if import_layer is None or import_layer == package_layer:
            continue
        if import_layer not in allowed:
            logger.warning(
                "Layer violation: %s cannot import from %s (%s)",
                package_layer,
                import_layer,
                imported,
            )
            return False
    return True


DEFAULT_RULES: List[InvariantRule] = [
    InvariantRule(
        name="no-direct-process-env",
        description="Patches cannot introduce new process.env access",
        severity=Severity.HIGH,
        validate=no_direct_process_env,
        tags=["security", "environment"],
        flag="no-process-env",
    ),
    InvariantRule(
        name="cryptographic-integrity",
        description="Security pkgs cannot use insecure hashing",
        severity=Severity.CRITICAL,
        validate=cryptographic_integrity,
        tags=["security", "crypto"],
        flag="crypto-integrity",
    ),
    InvariantRule(
        name="dependency-boundary",
        description="Patches cannot introduce cross-layer deps",
        severity=Severity.HIGH,
        validate=dependency_boundary,
        tags=["architecture", "dependencies", "layers"],
        flag="layer-boundary",
    ),
    InvariantRule(
        name="no-eval-usage",
        description="Patches cannot introduce eval() or Function() constructors",
        severity=Severity.CRITICAL,
        validate=no_eval_usage,
        tags=["security", "code-execution"],
    ),
    InvariantRule(
        name="no-global-mutation",
        description="Patches cannot modify global objects",
        severity=Severity.HIGH,
        validate=no_global_mutation,
        tags=["security", "globals", "mutation"],
    ),
]

# Shipped but off unless an invariant definitions document enables them.
OPTIONAL_RULES: List[InvariantRule] = [
    InvariantRule(
        name="logging-consistency",
        description="Patches must use consistent logging patterns",
        severity=Severity.LOW,
        validate=logging_consistency,
        tags=["logging", "consistency", "observability"],
    ),
]
