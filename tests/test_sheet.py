import pytest

from toolshed.spreadsheet.formula import FormulaError
from toolshed.spreadsheet.sheet import CyclicDependencyError, Sheet
from toolshed.spreadsheet.values import INVALID


def cells(sheet):
    return dict(sheet.cells())


def test_formula_chain():
    sheet = Sheet()
    sheet.update("A1", "=1+2")
    sheet.update("A2", "=A1+3")
    sheet.evaluate()
    result = cells(sheet)
    assert result["A1"] == "3"
    assert result["A2"] == "6"


def test_range_sum_matches_addition():
    sheet = Sheet()
    sheet.update("A1", "1")
    sheet.update("A2", "2")
    sheet.update("A3", "=SUM(A1:A2)")
    sheet.update("B1", "=A1+A2")
    sheet.evaluate()
    result = cells(sheet)
    assert result["A3"] == result["B1"]


def test_vlookup_example():
    sheet = Sheet()
    for ref, value in [
        ("A1", "Name"), ("B1", "Score"),
        ("A2", "Alice"), ("A3", "Bob"), ("A4", "Charlie"),
        ("B2", "85"), ("B3", "92"), ("B4", "78"),
        ("D1", "Charlie"),
    ]:
        sheet.update(ref, value)
    sheet.update("D2", "=VLOOKUP(D1,A2:B4,2)")
    sheet.evaluate()
    assert cells(sheet)["D2"] == "78"


def test_errors_mark_cells_invalid():
    sheet = Sheet()
    sheet.update("A1", "=BINOM.INV()")
    sheet.update("A2", "hello")
    sheet.update("A3", "=A2+1")
    sheet.evaluate()
    result = cells(sheet)
    assert result["A1"] == INVALID
    assert result["A3"] == INVALID
    assert result["A2"] == "hello"


def test_cycle_is_rejected():
    sheet = Sheet()
    sheet.update("A1", "=B1")
    sheet.update("B1", "=A1")
    with pytest.raises(CyclicDependencyError):
        sheet.topo_sort()
    with pytest.raises(CyclicDependencyError):
        sheet.evaluate()


def test_self_reference_is_a_cycle():
    sheet = Sheet()
    sheet.update("A1", "=A1+1")
    with pytest.raises(CyclicDependencyError):
        sheet.evaluate()


def test_topo_order_puts_dependencies_first():
    sheet = Sheet()
    sheet.update("C1", "=B1+1")
    sheet.update("B1", "=A1+1")
    sheet.update("A1", "4")
    order = sheet.topo_sort()
    assert order.index("A1") < order.index("B1") < order.index("C1")


def test_dirty_tracks_changes():
    sheet = Sheet()
    sheet.update("A1", "=1+1")
    sheet.update("B1", "x")
    assert list(sheet.dirty()) == ["A1", "B1"]
    sheet.evaluate()
    assert set(sheet.dirty()) == {"A1"}
    sheet.evaluate()
    assert list(sheet.dirty()) == []


def test_dependents_follow_input_changes():
    sheet = Sheet()
    sheet.update("A1", "1")
    sheet.update("A2", "=A1+A1")
    sheet.update("A3", "=A1*2")
    sheet.evaluate()
    before = cells(sheet)["A2"]
    sheet.update("A1", "5")
    sheet.evaluate()
    after = cells(sheet)
    assert after["A2"] == after["A3"]
    assert after["A2"] != before
    assert set(sheet.dirty()) == {"A2", "A3"}


def test_append_column_fills_from_first_row():
    sheet = Sheet()
    sheet.append_column("A7", ["x", "y"])
    assert cells(sheet) == {"A1": "x", "A2": "y"}


def test_clearing_a_cell_invalidates_dependents():
    sheet = Sheet()
    sheet.update("A1", "1")
    sheet.update("A2", "=A1+1")
    sheet.evaluate()
    sheet.update("A1", "")
    sheet.evaluate()
    result = cells(sheet)
    assert "A1" not in result
    assert result["A2"] == INVALID


def test_replacing_formula_with_text_keeps_text():
    sheet = Sheet()
    sheet.update("A1", "=1+1")
    sheet.evaluate()
    sheet.update("A1", "plain")
    sheet.evaluate()
    assert cells(sheet)["A1"] == "plain"


def test_reset_clears_everything():
    sheet = Sheet()
    sheet.update("A1", "=1+1")
    sheet.evaluate()
    sheet.reset()
    assert cells(sheet) == {}
    assert list(sheet.dirty()) == []
    assert sheet.topo_sort() == []


def test_bad_formula_raises_and_leaves_cell():
    sheet = Sheet()
    sheet.update("A1", "keep")
    with pytest.raises(FormulaError):
        sheet.update("A1", "=SUM(1")
    assert cells(sheet)["A1"] == "keep"


def test_rows_and_cols_start_empty():
    sheet = Sheet()
    assert list(sheet.rows()) == []
    assert list(sheet.cols()) == []