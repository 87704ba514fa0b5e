"""Tests for expression evaluation."""

import pytest

from src.dice.errors import (
    DivisionByZeroError,
    EvaluationErrorKind,
    ExplodeLimitExceededError,
    RerollLimitExceededError,
)
from src.dice.evaluator import evaluate, truncating_divide
from src.dice.parser import parse_dice
from src.dice.types import Constant, DropLowest, Explode, KeepHighest, Negate, Reroll, RollExpression
from tests.factories import ConstantSource, FixedSequenceSource


def _evaluate(notation: str, draws: list[int], **limits):
    source = FixedSequenceSource(draws)
    evaluation = evaluate(parse_dice(notation, **limits), source)
    assert source.remaining == 0, "test queued more draws than were used"
    return evaluation


class TestArithmetic:
    """Tests for arithmetic over terms and constants."""

    def test_constant_only(self):
        """Test that constants need no draws."""
        assert _evaluate("2+3*4", []).total == 14

    def test_dice_plus_constant(self):
        """Test 3d6+2 sums dice and constant."""
        evaluation = _evaluate("3d6+2", [1, 2, 3])
        assert evaluation.total == 8
        assert len(evaluation.dice) == 3

    def test_subtract_terms(self):
        """Test subtraction of two dice terms."""
        assert _evaluate("1d20-1d4", [15, 3]).total == 12

    def test_multiply_group(self):
        """Test (1d6+1)*2."""
        assert _evaluate("(1d6+1)*2", [4]).total == 10

    def test_unary_minus(self):
        """Test -1d4+10."""
        assert _evaluate("-1d4+10", [3]).total == 7

    def test_division_truncates(self):
        """Test 1d8/2 truncates."""
        assert _evaluate("1d8/2", [7]).total == 3

    def test_negative_division_truncates_toward_zero(self):
        """Test -7/2 is -3, not -4."""
        assert _evaluate("-7/2", []).total == -3

    def test_division_by_zero_raises(self):
        """Test dividing by a zero-valued subexpression."""
        with pytest.raises(DivisionByZeroError) as exc_info:
            _evaluate("1d6/(1-1)", [4])
        assert exc_info.value.kind == EvaluationErrorKind.DIVISION_BY_ZERO
        assert exc_info.value.expression == "1d6/(1-1)"

    def test_division_by_zero_is_arithmetic_error(self):
        """Test that evaluation errors are ArithmeticErrors."""
        with pytest.raises(ArithmeticError):
            _evaluate("1/0", [])

    @pytest.mark.parametrize(
        "dividend,divisor,expected",
        [(7, 2, 3), (-7, 2, -3), (7, -2, -3), (-7, -2, 3), (0, 5, 0), (6, 3, 2)],
    )
    def test_truncating_divide(self, dividend, divisor, expected):
        """Test truncation toward zero for every sign combination."""
        assert truncating_divide(dividend, divisor) == expected


class TestKeepDrop:
    """Tests for keep/drop modifiers."""

    def test_keep_highest_scenario(self):
        """Test 2d20kh1 with draws [14, 9]."""
        evaluation = _evaluate("2d20kh1", [14, 9])
        assert evaluation.total == 14
        assert [d.kept for d in evaluation.dice] == [True, False]

    def test_keep_lowest(self):
        """Test 2d20kl1 keeps the lower die."""
        evaluation = _evaluate("2d20kl1", [14, 9])
        assert evaluation.total == 9
        assert [d.kept for d in evaluation.dice] == [False, True]

    def test_drop_lowest_scenario(self):
        """Test 4d6dl1 with draws [6, 4, 2, 5]."""
        evaluation = _evaluate("4d6dl1", [6, 4, 2, 5])
        kept = [d.value for d in evaluation.dice if d.kept]
        dropped = [d.value for d in evaluation.dice if not d.kept]
        assert kept == [6, 4, 5]
        assert dropped == [2]
        assert evaluation.total == 15

    def test_drop_lowest_tie_drops_first_occurrence(self):
        """Test that the earliest of equal minimums is dropped."""
        evaluation = _evaluate("4d6dl1", [3, 1, 5, 1])
        assert [d.kept for d in evaluation.dice] == [True, False, True, True]

    def test_keep_highest_tie_keeps_first_occurrence(self):
        """Test that the earliest of equal maximums is kept."""
        evaluation = _evaluate("3d6kh1", [6, 2, 6])
        assert [d.kept for d in evaluation.dice] == [True, False, False]

    def test_drop_highest(self):
        """Test 3d6dh1."""
        evaluation = _evaluate("3d6dh1", [2, 6, 4])
        assert evaluation.total == 6
        assert [d.kept for d in evaluation.dice] == [True, False, True]

    def test_keep_more_than_rolled_keeps_all(self):
        """Test that kh5 on two dice keeps both."""
        evaluation = _evaluate("2d6kh5", [3, 4])
        assert evaluation.total == 7
        assert all(d.kept for d in evaluation.dice)

    def test_drop_more_than_rolled_drops_all(self):
        """Test that dl5 on two dice leaves nothing."""
        assert _evaluate("2d6dl5", [3, 4]).total == 0

    def test_chained_selection_uses_remaining_dice(self):
        """Test that dl1 then dh1 each act on the kept dice."""
        evaluation = _evaluate("4d6dl1dh1", [1, 6, 3, 4])
        assert [d.kept for d in evaluation.dice] == [False, False, True, True]
        assert evaluation.total == 7

    def test_kept_never_exceeds_count(self):
        """Test kept dice are at most the count."""
        evaluation = _evaluate("4d6kh3", [1, 2, 3, 4])
        assert sum(d.kept for d in evaluation.dice) == 3

    def test_breakdown_records_dropped_indices(self):
        """Test that the modifier outcome lists dropped dice."""
        evaluation = _evaluate("4d6dl1", [6, 4, 2, 5])
        (outcome,) = evaluation.breakdown
        assert outcome.modifier == DropLowest(1)
        assert outcome.affected == (2,)


class TestReroll:
    """Tests for reroll modifiers."""

    def test_reroll_replaces_matching_die(self):
        """Test 3d6r1 rerolls the one."""
        evaluation = _evaluate("3d6r1", [1, 4, 5, 3])
        assert [d.value for d in evaluation.dice] == [3, 4, 5]
        assert evaluation.dice[0].rerolls == (1,)
        assert evaluation.total == 12

    def test_reroll_stops_at_limit(self):
        """Test that the final re-draw stands after max_rerolls."""
        evaluation = _evaluate("1d6r1", [1, 1, 1])
        assert evaluation.dice[0].value == 1
        assert evaluation.dice[0].rerolls == (1, 1)

    def test_reroll_limit_is_configurable(self):
        """Test a larger reroll cap."""
        evaluation = _evaluate("1d6r1", [1, 1, 1, 1, 2], reroll_max=4)
        assert evaluation.dice[0].value == 2

    def test_reroll_zero_limit_keeps_original(self):
        """Test that reroll_max=0 disables re-draws."""
        evaluation = _evaluate("1d6r1", [1], reroll_max=0)
        assert evaluation.dice[0].value == 1

    def test_reroll_at_most(self):
        """Test r<2 rerolls ones and twos."""
        evaluation = _evaluate("2d6r<2", [2, 1, 5, 6])
        assert [d.value for d in evaluation.dice] == [5, 6]

    def test_reroll_every_face_raises(self):
        """Test that 1d1r1 can never succeed."""
        with pytest.raises(RerollLimitExceededError) as exc_info:
            _evaluate("1d1r1", [])
        assert exc_info.value.kind == EvaluationErrorKind.REROLL_LIMIT_EXCEEDED
        assert exc_info.value.sides == 1

    def test_reroll_covering_range_raises(self):
        """Test that r<6 on a d6 matches every face."""
        with pytest.raises(RerollLimitExceededError):
            _evaluate("2d6r<6", [])

    def test_breakdown_lists_rerolled_dice(self):
        """Test that the reroll outcome names affected dice."""
        evaluation = _evaluate("3d6r1", [2, 1, 5, 3])
        (outcome,) = evaluation.breakdown
        assert isinstance(outcome.modifier, Reroll)
        assert outcome.affected == (1,)


class TestExplode:
    """Tests for exploding dice."""

    def test_explode_adds_die_on_max(self):
        """Test 1d8! with a maximum roll."""
        evaluation = _evaluate("1d8!", [8, 3])
        assert evaluation.total == 11
        assert [d.exploded for d in evaluation.dice] == [False, True]

    def test_explode_chains(self):
        """Test that an added die can explode again."""
        evaluation = _evaluate("1d6!", [6, 6, 2])
        assert evaluation.total == 14
        assert len(evaluation.dice) == 3

    def test_no_explosion_below_max(self):
        """Test that lower faces do not explode."""
        evaluation = _evaluate("2d6!", [5, 1])
        assert len(evaluation.dice) == 2

    def test_explode_threshold(self):
        """Test !>5 explodes fives and sixes."""
        evaluation = _evaluate("1d6!>5", [5, 6, 1])
        assert evaluation.total == 12

    def test_d1_explode_stops_at_limit(self):
        """Test that 1d1! draws exactly 1 + explode_max dice and fails."""
        source = ConstantSource(1)
        with pytest.raises(ExplodeLimitExceededError) as exc_info:
            evaluate(parse_dice("1d1!"), source)
        assert source.calls == 101
        assert exc_info.value.limit == 100

    def test_d1_explode_custom_limit(self):
        """Test the explode cap is configurable."""
        source = ConstantSource(1)
        with pytest.raises(ExplodeLimitExceededError):
            evaluate(parse_dice("1d1!", explode_max=5), source)
        assert source.calls == 6

    def test_zero_explode_limit_fails_on_first_explosion(self):
        """Test that explode_max=0 forbids any extra die."""
        with pytest.raises(ExplodeLimitExceededError):
            _evaluate("1d6!", [6], explode_max=0)

    def test_explode_then_keep(self):
        """Test keep/drop sees exploded dice."""
        evaluation = _evaluate("2d6!kh1", [6, 2, 4])
        assert evaluation.total == 6
        assert [d.kept for d in evaluation.dice] == [True, False, False]

    def test_breakdown_lists_added_dice(self):
        """Test the explode outcome lists indices of added dice."""
        evaluation = _evaluate("2d6!", [6, 2, 3])
        (outcome,) = evaluation.breakdown
        assert isinstance(outcome.modifier, Explode)
        assert outcome.affected == (2,)


class TestModifierOrder:
    """Tests for the fixed reroll, explode, keep/drop order."""

    def test_order_independent_of_text(self):
        """Test that kh1 written first still applies last."""
        first = _evaluate("2d6kh1!r1", [1, 6, 3, 2])
        second = _evaluate("2d6r1!kh1", [1, 6, 3, 2])
        assert first.total == second.total == 6
        assert [type(o.modifier) for o in first.breakdown] == [Reroll, Explode, KeepHighest]

    def test_reroll_then_explode(self):
        """Test a rerolled maximum explodes."""
        evaluation = _evaluate("1d6r1!", [1, 6, 2])
        assert evaluation.total == 8


class TestInvariants:
    """Tests for result invariants."""

    def test_total_equals_sum_of_kept_plus_constants(self):
        """Test total against kept dice for a mixed expression."""
        evaluation = _evaluate("4d6dl1+1d8+3", [6, 4, 2, 5, 7])
        assert evaluation.total == sum(d.value for d in evaluation.dice if d.kept) + 3

    def test_term_indices_follow_source_order(self):
        """Test each die is tagged with its term."""
        evaluation = _evaluate("2d4+1d6", [1, 2, 3])
        assert [d.term_index for d in evaluation.dice] == [0, 0, 1]
        assert [d.sides for d in evaluation.dice] == [4, 4, 6]

    def test_out_of_range_draw_rejected(self):
        """Test that a misbehaving source cannot break the value range."""

        class BadSource:
            def next_int(self, max_inclusive):
                return max_inclusive + 1

            def quality_level(self):
                return None

        with pytest.raises(ValueError, match="Random source returned"):
            evaluate(parse_dice("1d6"), BadSource())

    def test_same_draws_same_result(self):
        """Test evaluation is a pure function of the draws."""
        first = _evaluate("4d6dl1+2", [3, 5, 1, 6])
        second = _evaluate("4d6dl1+2", [3, 5, 1, 6])
        assert first == second


class TestLargeExpressions:
    """Tests for expressions far deeper than the interpreter stack."""

    def test_long_constant_sum(self):
        """Test a 3000-operand sum evaluates."""
        expression = parse_dice("+".join(["1"] * 3000), max_terms=3000)
        assert evaluate(expression, ConstantSource(1)).total == 3000

    def test_long_dice_sum(self):
        """Test 1500 dice terms are all rolled, in order."""
        expression = parse_dice("+".join(["1d6"] * 1500), max_terms=1500)
        source = ConstantSource(4)
        evaluation = evaluate(expression, source)
        assert evaluation.total == 6000
        assert source.calls == 1500
        assert [d.term_index for d in evaluation.dice] == list(range(1500))

    def test_long_mixed_chain_keeps_left_associativity(self):
        """Test a long subtraction chain still folds left to right."""
        expression = parse_dice("100" + "-1" * 2000, max_terms=2001)
        assert evaluate(expression, ConstantSource(1)).total == -1900

    def test_deep_negation_tree(self):
        """Test a hand-built tree nested 5000 levels deep."""
        node = Constant(7)
        for _ in range(5000):
            node = Negate(node)
        evaluation = evaluate(RollExpression("deep", node), ConstantSource(1))
        assert evaluation.total == 7
