import unittest
from abc import ABC, abstractmethod
from typing import NamedTuple, Protocol

import pytest

from tinyioc import Container, NoConstructorError, UnregisteredServiceError, constructor


class Engine: ...


class Wheels: ...


class Radio: ...


class Car:
    def __init__(self, engine: Engine, radio: Radio):
        self.engine = engine
        self.radio = radio
        self.built_by = "__init__"

    @constructor
    @classmethod
    def with_wheels(cls, engine: Engine, wheels: Wheels) -> "Car":
        car = cls(engine, Radio())
        car.wheels = wheels
        car.built_by = "with_wheels"
        return car


class Bike:
    def __init__(self, wheels: Wheels):
        self.wheels = wheels
        self.built_by = "__init__"

    @classmethod
    @constructor
    def parked(cls) -> "Bike":
        bike = cls(Wheels())
        bike.built_by = "parked"
        return bike

    @classmethod
    def not_a_constructor(cls, engine: Engine, radio: Radio, wheels: Wheels) -> "Bike":
        raise AssertionError("unmarked classmethods are never used")


class TestConstructorSelection(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_picks_constructor_with_most_resolvable_parameters(self):
        self.cont.register(Engine)
        self.cont.register(Wheels)
        self.cont.register(Car)

        car = self.cont.resolve(Car)

        assert car.built_by == "with_wheels"
        assert isinstance(car.wheels, Wheels)

    def test_tie_goes_to_earliest_declared_constructor(self):
        self.cont.register(Engine)
        self.cont.register(Wheels)
        self.cont.register(Radio)
        self.cont.register(Car)

        assert self.cont.resolve(Car).built_by == "__init__"

    def test_marker_works_below_classmethod(self):
        self.cont.register(Bike)

        # __init__ scores 0, parked scores 0: the first one is chosen and fails loudly
        with pytest.raises(UnregisteredServiceError):
            self.cont.resolve(Bike)

        self.cont.register(Wheels)
        assert self.cont.resolve(Bike).built_by == "__init__"

    def test_chosen_constructor_parameters_are_resolved_unconditionally(self):
        self.cont.register(Engine)
        self.cont.register(Car)

        # both candidates score 1; __init__ wins and Radio cannot be resolved
        with pytest.raises(UnregisteredServiceError) as ctx:
            self.cont.resolve(Car)
        assert ctx.value.token is Radio

    def test_explicit_constructors_replace_discovery(self):
        class Pair:
            def __init__(self, *parts):
                self.parts = parts

        self.cont.register(Engine)
        self.cont.register(Wheels)
        self.cont.register(Pair, constructors=[(Engine,), (Engine, Wheels), (Radio,)])

        pair = self.cont.resolve(Pair)

        assert [type(p) for p in pair.parts] == [Engine, Wheels]

    def test_explicit_empty_constructors_raise_no_constructor_error(self):
        self.cont.register(Engine, constructors=[])

        with pytest.raises(NoConstructorError):
            self.cont.resolve(Engine)

    def test_abstract_class_has_no_constructor(self):
        class Base(ABC):
            @abstractmethod
            def run(self) -> None: ...

        self.cont.register(Base)

        with pytest.raises(NoConstructorError) as ctx:
            self.cont.resolve(Base)
        assert ctx.value.cls is Base

    def test_protocol_has_no_constructor(self):
        class Runner(Protocol):
            def run(self) -> None: ...

        self.cont.register(Runner)

        with pytest.raises(NoConstructorError):
            self.cont.resolve(Runner)

    def test_var_args_are_not_injected(self):
        class Flexible:
            def __init__(self, engine: Engine, *args, **kwargs):
                self.engine = engine
                self.args = args
                self.kwargs = kwargs

        self.cont.register(Engine)
        self.cont.register(Flexible)

        obj = self.cont.resolve(Flexible)
        assert isinstance(obj.engine, Engine)
        assert obj.args == ()
        assert obj.kwargs == {}

    def test_keyword_only_and_positional_only_parameters(self):
        class Mixed:
            def __init__(self, engine: Engine, /, *, wheels: Wheels, radio: Radio = None):
                self.engine = engine
                self.wheels = wheels
                self.radio = radio

        self.cont.register(Engine)
        self.cont.register(Wheels)
        self.cont.register(Mixed)

        obj = self.cont.resolve(Mixed)
        assert isinstance(obj.engine, Engine)
        assert isinstance(obj.wheels, Wheels)
        assert obj.radio is None

    def test_inherited_init_is_discovered(self):
        class Base:
            def __init__(self, engine: Engine):
                self.engine = engine

        class Child(Base): ...

        self.cont.register(Engine)
        self.cont.register(Child)

        assert isinstance(self.cont.resolve(Child).engine, Engine)

    def test_named_tuple_fields_are_resolved_by_type(self):
        class Point(NamedTuple):
            engine: Engine
            wheels: Wheels
            label: str = "origin"

        self.cont.register(Engine)
        self.cont.register(Wheels)
        self.cont.register(Point)

        point = self.cont.resolve(Point)

        assert isinstance(point.engine, Engine)
        assert isinstance(point.wheels, Wheels)
        assert point.label == "origin"

    def test_hints_come_from_new_when_init_is_inherited(self):
        class Built:
            def __new__(cls, engine: Engine):
                obj = super().__new__(cls)
                obj.engine = engine
                return obj

        self.cont.register(Engine)
        self.cont.register(Built)

        assert isinstance(self.cont.resolve(Built).engine, Engine)
