import itertools

import pytest

from mepris.errors import ExpressionError, SelectionError
from mepris.expr import And, Atom, Not, Or, eval_os, eval_tags, parse
from mepris.system import OsInfo, Platform


class TestParse:
    """Test expression parsing and precedence."""

    def test_single_atom(self):
        assert parse("linux") == Atom("linux")

    def test_whitespace_is_ignored(self):
        assert parse("  a   &&b ") == And(Atom("a"), Atom("b"))

    def test_and_binds_tighter_than_or(self):
        assert parse("a || b && c") == Or(Atom("a"), And(Atom("b"), Atom("c")))

    def test_not_binds_to_next_atom_only(self):
        assert parse("!a && b") == And(Not(Atom("a")), Atom("b"))

    def test_not_applies_to_parenthesized_group(self):
        assert parse("!(a || b)") == Not(Or(Atom("a"), Atom("b")))

    def test_stacked_not(self):
        assert parse("!!a") == Not(Not(Atom("a")))

    def test_operators_are_left_associative(self):
        assert parse("a || b || c") == Or(Or(Atom("a"), Atom("b")), Atom("c"))

    def test_id_like_atom(self):
        assert parse("%debian") == Atom("%debian")

    def test_identifier_characters(self):
        assert parse("dev-tools.v2") == Atom("dev-tools.v2")

    def test_variables(self):
        assert parse("(a || !b) && %c").variables() == {"a", "b", "%c"}


class TestParseErrors:
    """Malformed input raises ExpressionError, never anything else."""

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "   ",
            "(a",
            "a)",
            "()",
            "!",
            "a && !",
            "a &&",
            "|| a",
            "a b",
            "a & b",
            "a $ b",
            "((a)",
        ],
    )
    def test_malformed(self, text):
        with pytest.raises(ExpressionError):
            parse(text)

    def test_error_is_a_selection_error(self):
        with pytest.raises(SelectionError):
            parse("(")

    def test_error_carries_fragment_and_position(self):
        with pytest.raises(ExpressionError) as exc_info:
            parse("a && )b")
        assert exc_info.value.position == 5
        assert exc_info.value.fragment == ")b"
        assert "position 5" in str(exc_info.value)

    def test_unbalanced_open_paren_message(self):
        with pytest.raises(ExpressionError, match="Unbalanced"):
            parse("(a || b")

    def test_missing_atom_after_not(self):
        with pytest.raises(ExpressionError, match="Missing atom"):
            parse("!)")


class TestEvalOs:
    """Test OS evaluation against host facts."""

    @pytest.fixture
    def ubuntu(self):
        return OsInfo(platform=Platform.LINUX, id="ubuntu", id_like=("debian",))

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("!(arch || fedora)", True),
            ("%debian", True),
            ("windows", False),
            ("linux", True),
            ("ubuntu", True),
            ("UBUNTU", True),
            ("Linux && !macos", True),
            ("%arch", False),
            ("debian", False),
        ],
    )
    def test_ubuntu_host(self, ubuntu, text, expected):
        assert eval_os(parse(text), ubuntu) is expected

    def test_host_without_distribution_id(self):
        mac = OsInfo(platform=Platform.MACOS)
        assert eval_os(parse("macos"), mac)
        assert not eval_os(parse("ubuntu"), mac)
        assert not eval_os(parse("%debian"), mac)


class TestEvalTags:
    """Test tag evaluation against step tags."""

    def test_membership(self):
        expr = parse("tag1 && tag2")
        assert not eval_tags(expr, ["tag1"])
        assert eval_tags(expr, ["tag1", "tag2"])
        assert not eval_tags(expr, ["tag3"])

    def test_tags_are_case_sensitive(self):
        assert not eval_tags(parse("Dev"), ["dev"])

    def test_percent_is_an_ordinary_tag(self):
        assert eval_tags(parse("%x"), ["%x"])


def _all_exprs():
    atoms = [Atom("a"), Atom("b")]
    exprs = list(atoms)
    exprs += [Not(x) for x in atoms]
    exprs += [And(x, y) for x, y in itertools.product(atoms, repeat=2)]
    exprs += [Or(x, y) for x, y in itertools.product(atoms, repeat=2)]
    return exprs


class TestEvaluationLaws:
    """Double negation and De Morgan hold for both evaluators."""

    TAG_SETS = [set(), {"a"}, {"b"}, {"a", "b"}]

    @pytest.mark.parametrize("expr", _all_exprs())
    def test_double_negation_tags(self, expr):
        for tags in self.TAG_SETS:
            assert eval_tags(Not(Not(expr)), tags) == eval_tags(expr, tags)

    @pytest.mark.parametrize("expr", _all_exprs())
    def test_double_negation_os(self, expr):
        for host_id in ("a", "b", "c"):
            info = OsInfo(platform=Platform.LINUX, id=host_id)
            assert eval_os(Not(Not(expr)), info) == eval_os(expr, info)

    def test_de_morgan(self):
        a, b = Atom("a"), Atom("b")
        for tags in self.TAG_SETS:
            assert eval_tags(Not(And(a, b)), tags) == eval_tags(Or(Not(a), Not(b)), tags)
            assert eval_tags(Not(Or(a, b)), tags) == eval_tags(And(Not(a), Not(b)), tags)
        for host_id in ("a", "b", "c"):
            info = OsInfo(platform=Platform.LINUX, id=host_id)
            assert eval_os(Not(And(a, b)), info) == eval_os(Or(Not(a), Not(b)), info)
            assert eval_os(Not(Or(a, b)), info) == eval_os(And(Not(a), Not(b)), info)


class TestLargeExpressions:
    def test_deep_parentheses_are_rejected(self):
        text = "(" * 400 + "a" + ")" * 400
        with pytest.raises(ExpressionError, match="nested too deeply"):
            parse(text)

    def test_long_or_chain(self):
        expr = parse(" || ".join(["a"] * 2000) + " || b")
        assert expr.variables() == {"a", "b"}
        assert eval_tags(expr, {"b"})
        assert not eval_tags(expr, {"c"})
        info = OsInfo(platform=Platform.LINUX, id="b")
        assert eval_os(expr, info)

    def test_long_and_chain_with_negations(self):
        expr = parse(" && ".join(["!x"] * 2000))
        assert expr.variables() == {"x"}
        assert eval_tags(expr, set())
        assert not eval_tags(expr, {"x"})

    def test_operand_order_is_kept(self):
        # Not(a) || b: a wrong operand order would give Not(b) || a
        expr = parse("!a || b")
        assert not eval_tags(expr, {"a"})
        assert eval_tags(expr, {"b"})
