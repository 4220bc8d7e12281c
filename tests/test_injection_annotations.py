from __future__ import annotations

import unittest
from typing import TYPE_CHECKING, Annotated

import pytest

from treebind import Container, Inject, ResolutionError


if TYPE_CHECKING:
    from decimal import Decimal

    from treebind import Key


class Clock: ...


class Invoice:
    clock: Annotated[Clock, Inject]
    total: Decimal


class DetailedInvoice(Invoice):
    lines: list[Decimal]
    issued_by: Annotated[Clock, Inject()]


class BrokenInvoice:
    clock: Annotated[Clock, Inject]
    owner: Annotated[Key, Inject]


class ForwardInvoice:
    clock: Annotated["Clock", Inject]


class TestInjectionWithDeferredAnnotations(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_unresolvable_unmarked_annotation_does_not_block_injection(self):
        invoice = self.cont.resolve(Invoice)

        assert isinstance(invoice.clock, Clock)
        assert not hasattr(invoice, "total")

    def test_inherited_and_own_marked_fields_are_injected(self):
        invoice = self.cont.resolve(DetailedInvoice)

        assert isinstance(invoice.clock, Clock)
        assert isinstance(invoice.issued_by, Clock)

    def test_unresolvable_marked_annotation_raises(self):
        with pytest.raises(ResolutionError) as ctx:
            self.cont.resolve(BrokenInvoice)
        assert "'owner'" in str(ctx.value)

    def test_unresolvable_marked_annotation_leaves_singleton_uncached(self):
        self.cont.register_singleton(BrokenInvoice, lambda _: BrokenInvoice())

        with pytest.raises(ResolutionError):
            self.cont.resolve(BrokenInvoice)
        with pytest.raises(ResolutionError):
            self.cont.resolve(BrokenInvoice)

    def test_forward_reference_inside_marker_is_resolved(self):
        registered = Clock()
        self.cont.register_instance(Clock, registered)

        assert self.cont.resolve(ForwardInvoice).clock is registered
