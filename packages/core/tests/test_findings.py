"""Tests for finding normalisation and rule labels."""

from prlint_core.findings import Comment, FileResult, Finding, format_rule_label, normalize, normalize_path

CWD = "/work/repo/frontend"


class TestFormatRuleLabel:
    def test_core_rule_links_to_eslint_docs(self):
        assert format_rule_label("eqeqeq") == "[eqeqeq](https://eslint.org/docs/latest/rules/eqeqeq)"

    def test_typescript_eslint_rule_links_to_plugin_docs(self):
        label = format_rule_label("@typescript-eslint/no-explicit-any")
        assert label == "[@typescript-eslint/no-explicit-any](https://typescript-eslint.io/rules/no-explicit-any)"

    def test_react_rule(self):
        label = format_rule_label("react/jsx-key")
        assert "eslint-plugin-react/blob/master/docs/rules/jsx-key.md" in label

    def test_unknown_plugin_returns_raw_rule_id(self):
        assert format_rule_label("my-company/no-foo") == "my-company/no-foo"

    def test_none_rule_id_is_empty(self):
        assert format_rule_label(None) == ""

    def test_trailing_slash_returns_raw(self):
        assert format_rule_label("react/") == "react/"


class TestNormalizePath:
    def test_absolute_path_under_cwd_is_made_relative_and_prefixed(self):
        assert normalize_path(f"{CWD}/src/a.ts", prefix="frontend", cwd=CWD) == "frontend/src/a.ts"

    def test_relative_path_is_prefixed(self):
        assert normalize_path("src/a.ts", prefix="frontend", cwd=CWD) == "frontend/src/a.ts"

    def test_dot_slash_is_dropped(self):
        assert normalize_path("./src/a.ts", prefix="", cwd=CWD) == "src/a.ts"

    def test_no_prefix(self):
        assert normalize_path("/work/repo/src/a.ts", prefix="", cwd="/work/repo") == "src/a.ts"

    def test_cwd_with_trailing_slash(self):
        assert normalize_path("/work/repo/a.js", cwd="/work/repo/") == "a.js"

    def test_sibling_directory_resolves_against_repository_root(self):
        # "/work/repo/frontend-old" shares a string prefix with cwd but is outside it.
        assert normalize_path("/work/repo/frontend-old/a.js", prefix="frontend", cwd=CWD) == "frontend-old/a.js"

    def test_path_outside_repository_is_none(self):
        assert normalize_path("/work/repo/frontend-old/a.js", cwd=CWD) is None
        assert normalize_path("/tmp/other/a.js", prefix="frontend", cwd=CWD) is None


def _results():
    return [
        FileResult(
            file_path=f"{CWD}/src/a.ts",
            messages=[
                Finding(rule_id="no-unused-vars", message="'x' is defined but never used.", line=5, column=7),
                Finding(rule_id="@typescript-eslint/no-explicit-any", message="Unexpected any.", line=9),
            ],
        ),
        FileResult(file_path=f"{CWD}/src/clean.ts", messages=[]),
        FileResult(
            file_path=f"{CWD}/src/b.js",
            messages=[Finding(rule_id=None, message="Parsing error: Unexpected token", line=1)],
        ),
    ]


class TestNormalize:
    def test_flattens_in_file_then_finding_order(self):
        comments = normalize(_results(), prefix="frontend", cwd=CWD)
        assert [(c.path, c.line) for c in comments] == [
            ("frontend/src/a.ts", 5),
            ("frontend/src/a.ts", 9),
            ("frontend/src/b.js", 1),
        ]

    def test_body_uses_linked_label(self):
        comments = normalize(_results(), prefix="frontend", cwd=CWD)
        assert comments[0].body == (
            "[no-unused-vars](https://eslint.org/docs/latest/rules/no-unused-vars): 'x' is defined but never used."
        )

    def test_plain_label_style_matches_raw_format(self):
        comments = normalize(_results(), prefix="frontend", cwd=CWD, label_style="plain")
        assert comments[1].body == "@typescript-eslint/no-explicit-any: Unexpected any."

    def test_null_rule_id_body_is_message_only(self):
        comments = normalize(_results(), prefix="frontend", cwd=CWD)
        assert comments[2].body == "Parsing error: Unexpected token"

    def test_deterministic(self):
        first = normalize(_results(), prefix="frontend", cwd=CWD)
        second = normalize(_results(), prefix="frontend", cwd=CWD)
        assert first == second

    def test_empty_results(self):
        assert normalize([], prefix="frontend", cwd=CWD) == []

    def test_file_outside_repository_is_skipped(self, caplog):
        results = [
            FileResult(file_path="/tmp/other/a.ts", messages=[Finding(rule_id="semi", message="m", line=1)]),
            FileResult(file_path=f"{CWD}/src/b.ts", messages=[Finding(rule_id="semi", message="m", line=2)]),
        ]
        with caplog.at_level("WARNING", logger="prlint_core.findings"):
            comments = normalize(results, prefix="frontend", cwd=CWD, label_style="plain")
        assert comments == [Comment(path="frontend/src/b.ts", line=2, body="semi: m")]
        assert "/tmp/other/a.ts" in caplog.text


class TestComment:
    def test_structural_equality_and_hash(self):
        a = Comment(path="a.ts", line=5, body="no-unused-vars: x")
        b = Comment(path="a.ts", line=5, body="no-unused-vars: x")
        assert a == b
        assert len({a, b}) == 1

    def test_different_body_is_different_comment(self):
        assert Comment("a.ts", 5, "x") != Comment("a.ts", 5, "y")

    def test_as_api_dict(self):
        assert Comment("a.ts", 5, "x").as_api_dict() == {"path": "a.ts", "line": 5, "body": "x"}
