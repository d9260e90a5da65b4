"""Fact extraction for tension rules."""

from patchgate.models.tension import PatchFactContext

SECURITY_KEYWORDS = (
    "crypto",
    "auth",
    "jwt",
    "hash",
    "security",
    "tls",
    "ssl",
    "encrypt",
    "decrypt",
)


def build_fact_context(patch_content: str, package_name: str) -> PatchFactContext:
    """Derive the fact context from a patch's text and its package name."""
    lowered_name = package_name.lower()
    lowered_content = patch_content.lower()
    is_security = any(k in lowered_name for k in SECURITY_KEYWORDS)

    return PatchFactContext(
        patch_content=patch_content,
        package_name=package_name,
        package_category="security" if is_security else "general",
        patch_size=len(patch_content),
        line_count=len(patch_content.split("\n")),
        has_imports="import" in patch_content or "require(" in patch_content,
        has_exports="export" in patch_content or "module.exports" in patch_content,
        security_keywords=[k for k in SECURITY_KEYWORDS if k in lowered_content],
    )
