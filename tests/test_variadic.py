import unittest

from treebind import Container


class TestVariadicConstructorInjection(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_resolve_ignores_inherited_variadic_args_and_kwargs(self):
        class Base:
            def __init__(self, value: int = 7, *args, **kwargs):
                self.value = value
                self.args = args
                self.kwargs = kwargs

        class Derived(Base):
            ...
            # No explicit __init__; inherits Base.__init__ with *args/**kwargs

        child = self.cont.resolve(Derived)  # should ignore *args/**kwargs and use default for 'value'
        assert isinstance(child, Derived)
        assert child.value == 7
        assert child.args == ()
        assert child.kwargs == {}

    def test_resolve_wires_inherited_init_dependencies(self):
        class DB: ...

        class Base:
            def __init__(self, db: DB):
                self.db = db

        class Derived(Base): ...

        assert isinstance(self.cont.resolve(Derived).db, DB)

    def test_resolve_passes_positional_only_and_keyword_only_params(self):
        class DB: ...

        class Cache: ...

        class Service:
            def __init__(self, db: DB, /, *, cache: Cache, name: str = "svc"):
                self.db = db
                self.cache = cache
                self.name = name

        svc = self.cont.resolve(Service)
        assert isinstance(svc.db, DB)
        assert isinstance(svc.cache, Cache)
        assert svc.name == "svc"
