from toolshed.lisp.frame import Frame
from toolshed.lisp.nodes import new_int, new_str


def _prim(args, frame):
    return None


def test_define_and_get():
    frame = Frame()
    value = new_int(1)
    frame.define("a", value)
    assert frame.get("a") is value
    assert frame.get("missing") is None
    assert "a" in frame
    assert "missing" not in frame


def test_define_replaces():
    frame = Frame()
    frame.define("a", new_int(1))
    frame.define("a", new_int(2))
    assert frame.get("a").as_int() == 2
    assert len(frame.entries()) == 1


def test_child_sees_parent_and_shares_primitives():
    parent = Frame({"p": _prim})
    parent.define("a", new_int(1))
    child = parent.child()
    assert child.get("a").as_int() == 1
    assert child.primitives is parent.primitives
    assert child.parent is parent


def test_child_define_shadows_without_touching_parent():
    parent = Frame()
    parent.define("a", new_int(1))
    child = parent.child()
    child.define("a", new_int(5))
    assert child.get("a").as_int() == 5
    assert parent.get("a").as_int() == 1


def test_set_updates_nearest_binding():
    parent = Frame()
    parent.define("a", new_int(1))
    child = parent.child()
    child.set("a", new_int(9))
    assert parent.get("a").as_int() == 9
    assert child.entries() == []


def test_set_unbound_does_nothing():
    frame = Frame()
    frame.set("ghost", new_str("x"))
    assert frame.get("ghost") is None
    assert "ghost" not in frame


def test_entries_sorted_by_name():
    frame = Frame()
    for name in ["delta", "alpha", "charlie", "bravo"]:
        frame.define(name, new_int(0))
    names = [name for name, _ in frame.entries()]
    assert names == sorted(names)


def test_format_single_frame():
    frame = Frame()
    frame.define("a", new_int(1))
    assert frame.format(0) == "Frame {\n  a: 1\n}\n"


def test_format_nests_parent():
    parent = Frame()
    child = parent.child()
    text = child.format()
    assert text.startswith("Frame {\n")
    assert "\n  Frame {\n" in text
    assert text.endswith("}\n")