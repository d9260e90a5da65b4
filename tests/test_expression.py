"""
Tests for the tension condition language.
"""

import pytest

from patchgate.core.errors import ExpressionError
from patchgate.services.tension.expression import Condition, evaluate_condition, normalize

FACTS = {
    "patch_content": "+import { hash } from 'rapidhash';\n",
    "package_name": "node-crypto@1.0.0",
    "package_category": "security",
    "patch_size": 12000,
    "line_count": 3,
    "has_imports": True,
    "has_exports": False,
    "security_keywords": ["crypto", "hash"],
}


class TestNormalize:
    def test_js_operators(self):
        assert normalize("a === 1 && !b || c !== null") == "a == 1  and   not b  or  c != None"

    def test_string_literals_untouched(self):
        assert normalize("patch_content.includes('a && b')") == "patch_content.includes('a && b')"


class TestEvaluate:
    @pytest.mark.parametrize(
        "condition, expected",
        [
            ("patch_size > 10000", True),
            ("patch_size > 10000 && line_count > 100", False),
            ("patch_content.includes('rapidhash') && package_category === 'security'", True),
            ("package_name.startsWith('node-')", True),
            ("package_name.toUpperCase().endsWith('@1.0.0')", True),
            ("'hash' in security_keywords", True),
            ("security_keywords.length >= 2", True),
            ("security_keywords.length == 2 and not has_exports", True),
            ("!has_imports", False),
            ("patch_content.count('import') == 1", True),
            ("patch_size > -1", True),
            ("has_exports == false", True),
        ],
    )
    def test_conditions(self, condition, expected):
        assert evaluate_condition(condition, FACTS) is expected

    def test_unknown_field(self):
        with pytest.raises(ExpressionError):
            evaluate_condition("nope > 1", FACTS)

    def test_type_error_is_expression_error(self):
        with pytest.raises(ExpressionError):
            evaluate_condition("patch_content > 5", FACTS)


class TestForbidden:
    @pytest.mark.parametrize(
        "condition",
        [
            "__import__('os').system('true')",
            "patch_content.__class__",
            "patch_content[0] == '+'",
            "(lambda: 1)()",
            "[x for x in security_keywords]",
            "open('/etc/passwd')",
            "patch_content.replace('a', 'b')",
            "patch_size > ",
            "'x' * 1000000000000000 == 'y'",
            "patch_size / 1000 > 11",
            "len(security_keywords) == 2",
            "-patch_size < 0",
            "",
        ],
    )
    def test_rejected_at_compile_time(self, condition):
        with pytest.raises(ExpressionError):
            Condition(condition)
