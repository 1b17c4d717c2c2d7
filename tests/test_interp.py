import math
import time

import pytest

from toolshed.spreadsheet.formula import CellRef, FuncCall, Number, parse_formula
from toolshed.spreadsheet.interp import EvalError, evaluate, expand_range, expand_range_to_grid
from toolshed.spreadsheet.values import CellValue, Unimplemented, Value


def run(formula, data=None):
    expr, _ = parse_formula(formula)
    return evaluate(expr, data or {})


def cells(**entries):
    return {ref: CellValue(text) for ref, text in entries.items()}


def test_constants():
    assert run("=PI()") == Value(math.pi)
    assert run("=E()") == Value(math.e)
    assert run("=pi()") == Value(math.pi)


def test_addition_of_cells():
    data = cells(A1="1.5", A2="1.5")
    assert run("=A1+A2", data) == run("=2*A1", data)


def test_addition_value():
    assert run("=A1+A2", cells(A1="1", A2="2")) == Value(3.0)


def test_comparisons():
    assert run("=1<2") == Value(1.0)
    assert run("=1>2") == Value(0.0)
    assert run("=2==2") == Value(1.0)
    assert run("=2!=2") == Value(0.0)


def test_division_by_zero():
    with pytest.raises(EvalError, match="division by zero"):
        run("=1/0")


def test_non_numeric_operand():
    with pytest.raises(EvalError, match="left operand is not numeric"):
        run("=A1+1", cells(A1="hello"))
    with pytest.raises(EvalError, match="right operand is not numeric"):
        run("=1+A1", cells(A1="hello"))


def test_unsupported_operator():
    with pytest.raises(EvalError, match="unsupported binary op: <="):
        run("=1<=2")


def test_missing_cell_is_empty():
    assert evaluate(CellRef("Z9"), {}) == Value()


def test_cell_reads_evaluated_value():
    assert evaluate(CellRef("A1"), {"A1": CellValue("=1+2", 3.0)}) == Value(3.0)


def test_cell_text_stays_text():
    assert evaluate(CellRef("A1"), cells(A1="hello")) == Value("hello")


def test_sum_skips_text():
    data = cells(A1="1", A2="x", A3="2")
    assert run("=SUM(A1:A3)", data) == run("=A1+A3", data)


def test_bare_range_sums():
    data = cells(A1="1", A2="2", B1="4")
    assert run("=A1:B2", data) == run("=SUM(A1:B2)", data)


def test_mean_of_equal_values():
    assert run("=MEAN(A1:A2)", cells(A1="4", A2="4")) == Value(4.0)


def test_mean_without_numbers_is_nan():
    result = run("=MEAN(A1:A2)", cells(A1="a", A2="b"))
    assert str(result.value) == "nan"


@pytest.mark.parametrize("formula", ["=MEDIAN(1)", "=VAR(1)", "=BINOM.INV()"])
def test_unimplemented(formula):
    with pytest.raises(Unimplemented):
        run(formula)


def test_unknown_function():
    with pytest.raises(EvalError, match="unknown function: XLOOKUP"):
        run("=XLOOKUP(1)")


def test_mod_reads_first_argument_twice():
    assert run("=MOD(7,3)") == Value(0.0)


def test_round_half_away_from_zero():
    assert run("=ROUND(2.5)") == run("=CEIL(2.5)")
    assert run("=ROUND(2.5)").value == -run("=ROUND(0-2.5)").value


def test_abs_symmetry():
    assert run("=ABS(0-2)") == run("=ABS(2)")


def test_sin_matches_math():
    assert run("=SIN(0.5)") == Value(math.sin(0.5))


def test_abs_rejects_text():
    with pytest.raises(EvalError):
        run("=ABS(A1)", cells(A1="word"))


def test_missing_argument():
    with pytest.raises(EvalError):
        run("=ABS()")


def test_now_is_current_unix_time():
    before = int(time.time())
    result = run("=NOW()")
    after = int(time.time())
    assert isinstance(result.value, int)
    assert before <= result.value <= after


def test_rand_in_unit_interval():
    for _ in range(50):
        assert 0.0 <= run("=RAND()").value < 1.0


def test_norm_with_zero_spread():
    assert run("=NORM(5,0)") == Value(5.0)


def test_norm_argument_count():
    with pytest.raises(EvalError, match="NORM"):
        run("=NORM(1)")


def _score_table():
    return cells(
        A1="Name", B1="Score", A2="Alice", A3="Bob", A4="Charlie",
        B2="85", B3="92", B4="78", D1="Charlie",
    )


def test_vlookup_finds_row():
    assert run("=VLOOKUP(D1,A2:B4,2)", _score_table()) == Value("78")


def test_vlookup_numeric_key():
    data = _score_table()
    data["D1"] = CellValue("92")
    assert run("=VLOOKUP(D1,B2:B4,1)", data) == Value("92")


def test_vlookup_not_found():
    data = _score_table()
    data["D1"] = CellValue("Nobody")
    with pytest.raises(EvalError, match="not found"):
        run("=VLOOKUP(D1,A2:B4,2)", data)


def test_vlookup_needs_range():
    with pytest.raises(EvalError, match="range"):
        evaluate(FuncCall("VLOOKUP", [Number(1.0), Number(2.0), Number(3.0)]), {})


def test_vlookup_argument_count():
    with pytest.raises(EvalError, match="at least 3"):
        run("=VLOOKUP(1,2)")


def test_expand_range_column_major():
    assert expand_range("A1", "B2") == ["A1", "A2", "B1", "B2"]


def test_expand_range_to_grid_rows():
    assert expand_range_to_grid("A1", "B2") == [["A1", "B1"], ["A2", "B2"]]


def test_reversed_endpoints():
    assert expand_range("B2", "A1") == expand_range("A1", "B2")
    assert expand_range_to_grid("B2", "A1") == expand_range_to_grid("A1", "B2")


def test_grid_and_list_cover_same_cells():
    grid = expand_range_to_grid("B3", "D7")
    flat = [ref for row in grid for ref in row]
    assert sorted(flat) == sorted(expand_range("B3", "D7"))