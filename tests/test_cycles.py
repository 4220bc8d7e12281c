import pytest

from treebind import Container, DependencyCycleError, Key, ResolutionError


class CycleA:
    def __init__(self, b: "CycleB"):
        self.b = b


class CycleB:
    def __init__(self, a: CycleA):
        self.a = a


class Leaf: ...


class Middle:
    def __init__(self, leaf: Leaf):
        self.leaf = leaf


class Top:
    def __init__(self, middle: Middle):
        self.middle = middle


class SingletonA:
    def __inject_members__(self):
        return {"b": SingletonB}


class SingletonB:
    def __inject_members__(self):
        return {"a": SingletonA}


def test_constructor_cycle_without_guard_recurses_until_python_stops_it():
    c = Container()
    with pytest.raises(RecursionError):
        c.resolve(CycleA)


def test_constructor_cycle_with_guard_raises_dependency_cycle_error():
    c = Container(max_depth=20)
    with pytest.raises(DependencyCycleError) as ctx:
        c.resolve(CycleA)

    err = ctx.value
    assert "cycle suspected" in str(err)
    assert err.max_depth == 20
    assert len(err.chain) == 21
    assert err.chain[0] == Key.untagged(CycleA)
    assert err.chain[1] == Key.untagged(CycleB)


def test_dependency_cycle_error_is_a_resolution_error():
    assert issubclass(DependencyCycleError, ResolutionError)


def test_guard_allows_chains_within_the_limit():
    c = Container(max_depth=3)
    top = c.resolve(Top)
    assert isinstance(top.middle.leaf, Leaf)


def test_guard_rejects_chains_beyond_the_limit():
    c = Container(max_depth=2)
    with pytest.raises(DependencyCycleError):
        c.resolve(Top)


def test_parent_delegation_does_not_count_towards_depth():
    root = Container(max_depth=3)
    child = root.create_child().create_child()
    assert isinstance(child.resolve(Top).middle.leaf, Leaf)


def test_child_limit_applies_while_unguarded_parent_auto_constructs():
    root = Container()
    child = Container(root, max_depth=5)

    with pytest.raises(DependencyCycleError) as ctx:
        child.resolve(CycleA)
    assert ctx.value.max_depth == 5


def test_tightest_limit_along_the_chain_wins():
    root = Container(max_depth=2)
    child = root.create_child(max_depth=10)

    with pytest.raises(DependencyCycleError) as ctx:
        child.resolve(Top)
    assert ctx.value.max_depth == 2


@pytest.mark.parametrize("max_depth", [0, -1])
def test_max_depth_must_be_positive(max_depth):
    with pytest.raises(ValueError):
        Container(max_depth=max_depth)


def test_singletons_may_refer_to_each_other_through_members():
    c = Container()
    c.register_singleton(SingletonA, lambda _: SingletonA())
    c.register_singleton(SingletonB, lambda _: SingletonB())

    a = c.resolve(SingletonA)
    assert a.b.a is a
    assert c.resolve(SingletonB) is a.b
