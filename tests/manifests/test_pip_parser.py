"""Tests for the pip requirements parser."""

import pytest

from dephistory.dependency import Dependency, Ecosystem, WeakVersion
from dephistory.exceptions import ParseError
from dephistory.manifests import PipParser, parse_requirements
from dephistory.manifests.pip import clean_line


def py(name, version=""):
    return Dependency(name, version, Ecosystem.PYTHON)


class TestCleanLine:
    @pytest.mark.parametrize(
        "line",
        [
            "",
            "   ",
            "# comment",
            "-r base.txt",
            "--requirement base.txt",
            "-i https://pypi.example.com/simple",
            "--index-url https://pypi.example.com/simple",
            "-c constraints.txt",
            "/usr/lib/python3.8/site-packages",
        ],
    )
    def test_skipped_lines(self, line):
        assert clean_line(line) is None

    def test_strips_inline_comment_and_marker(self):
        assert clean_line("requests==2.0 ; python_version < '3'  # pinned") == "requests==2.0"

    def test_strips_editable_prefix(self):
        assert clean_line("-e git+https://github.com/org/lib.git@v1") == "git+https://github.com/org/lib.git@v1"


class TestParseRequirements:
    def test_weak_version(self):
        result = parse_requirements(b"foo>=1.2\n")
        assert result.dependencies == [py("foo", "1.2")]
        assert result.issues == [WeakVersion.create("foo", "1.2", ">=")]

    def test_exact_version_has_no_issue(self):
        result = parse_requirements(b"foo==1.2\n")
        assert result.dependencies == [py("foo", "1.2")]
        assert result.issues == []

    def test_unconstrained(self):
        result = parse_requirements(b"foo\n")
        assert result.dependencies == [py("foo", "")]
        assert result.issues == []

    def test_wildcard_is_weak(self):
        result = parse_requirements(b"foo==1.*\n")
        assert result.dependencies == [py("foo", "1.*")]
        assert len(result.issues) == 1

    def test_extras_and_compound_constraint(self):
        result = parse_requirements(b"celery[redis]>=4.0,<5\n")
        assert result.dependencies == [py("celery", "4.0")]
        assert result.issues[0].operator == ">="

    @pytest.mark.parametrize("op", ["~=", "!=", "<=", "<", ">"])
    def test_non_exact_operators(self, op):
        result = parse_requirements(f"foo{op}1.0".encode())
        assert result.issues[0].operator == op

    def test_vcs_line(self):
        text = b"git+https://github.com/org/somelib.git@v1.4#egg=somelib\n"
        result = parse_requirements(text)
        assert result.dependencies == [py("somelib", "v1.4")]
        assert result.issues == []

    def test_vcs_line_without_ref(self):
        result = parse_requirements(b"git+ssh://git@github.com/org/tool\n")
        assert result.dependencies == [py("tool", "")]

    def test_dev_file_only_with_test_deps(self):
        base, dev = b"flask==2.0\n", b"pytest==7.0\n"
        assert len(parse_requirements(base, dev, include_test=True).dependencies) == 2
        assert len(parse_requirements(base, dev, include_test=False).dependencies) == 1

    def test_utf8_bom(self):
        result = parse_requirements("\ufeffflask==2.0\n".encode("utf-8"))
        assert result.dependencies == [py("flask", "2.0")]

    def test_invalid_utf8(self):
        with pytest.raises(ParseError):
            parse_requirements(b"\xff\xfe\xfa")


class TestPipParser:
    def test_companion_is_dev_file(self, tmp_path):
        parser = PipParser()
        assert parser.companion(tmp_path / "requirements.txt") == tmp_path / "requirements-dev.txt"
        assert parser.companion(tmp_path / "requirements-dev.txt") is None

    def test_parse_file_reads_companion(self, tmp_path):
        (tmp_path / "requirements.txt").write_text("flask==2.0\n")
        (tmp_path / "requirements-dev.txt").write_text("pytest>=7\n")
        result = PipParser().parse_file(tmp_path / "requirements.txt")
        assert [d.name for d in result.dependencies] == ["flask", "pytest"]
        assert len(result.issues) == 1
