"""Test cases for XmlDeserialiser."""

import io
import threading
from typing import Optional

import pytest
from pydantic import BaseModel, Field, ValidationError

from embres.config import ResourceConfig
from embres.exceptions import InvalidArgumentError, XmlDeserialisationError
from embres.serialization import (
    XmlAttributeOverrides,
    XmlDeserialiser,
    XmlFieldOverride,
    XmlRoot,
    XmlSerializerCache,
)
from embres.utils.cache_keys import compute_overrides_key


class Address(BaseModel):
    City: str
    Zip: Optional[str] = None


class Employee(BaseModel):
    Name: str
    Age: int
    Home: Optional[Address] = None
    Skills: list[str] = Field(default_factory=list)
    Active: bool = True


class Item(BaseModel):
    item_id: int = Field(alias="ItemId")
    label: str = Field(alias="Label")


def _stream(xml: str) -> io.BytesIO:
    return io.BytesIO(xml.encode("utf-8"))


@pytest.fixture
def deserialiser() -> XmlDeserialiser:
    """Deserialiser with a private cache."""
    return XmlDeserialiser(config=ResourceConfig())


class TestDefaultMapping:
    """Test cases for XmlSerializer-style default mapping."""

    def test_nested_collections_and_coercion(
        self, deserialiser: XmlDeserialiser
    ) -> None:
        """Nested models recurse, repeated elements collect, text coerces."""
        xml = """
        <Employee>
          <Name>Bob</Name>
          <Age>42</Age>
          <Home><City>Oslo</City></Home>
          <Skills>python</Skills>
          <Skills>xml</Skills>
          <Active>false</Active>
          <Unknown>ignored</Unknown>
        </Employee>
        """

        employee = deserialiser.deserialise(_stream(xml), Employee)

        assert employee == Employee(
            Name="Bob",
            Age=42,
            Home=Address(City="Oslo"),
            Skills=["python", "xml"],
            Active=False,
        )

    def test_missing_optional_elements_use_defaults(
        self, deserialiser: XmlDeserialiser
    ) -> None:
        """Absent elements fall back to model defaults."""
        employee = deserialiser.deserialise(
            _stream("<Employee><Name>Eve</Name><Age>30</Age></Employee>"), Employee
        )

        assert employee is not None
        assert employee.Home is None
        assert employee.Skills == []
        assert employee.Active is True

    def test_aliases_name_elements(self, deserialiser: XmlDeserialiser) -> None:
        """Field aliases are used as element names."""
        item = deserialiser.deserialise(
            _stream("<Item><ItemId>7</ItemId><Label>bolt</Label></Item>"), Item
        )

        assert item is not None
        assert item.item_id == 7
        assert item.label == "bolt"

    def test_empty_element_is_empty_string(
        self, deserialiser: XmlDeserialiser
    ) -> None:
        """A self-closing element reads as an empty string."""
        address = deserialiser.deserialise(
            _stream("<Address><City/></Address>"), Address
        )

        assert address == Address(City="")

    def test_nil_child_is_none(self, deserialiser: XmlDeserialiser) -> None:
        """An xsi:nil child element maps to None."""
        xml = (
            '<Employee xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">'
            '<Name>Bob</Name><Age>1</Age><Home xsi:nil="true"/></Employee>'
        )

        employee = deserialiser.deserialise(_stream(xml), Employee)

        assert employee is not None
        assert employee.Home is None

    def test_nil_root_returns_none(self, deserialiser: XmlDeserialiser) -> None:
        """An xsi:nil root maps to no value."""
        xml = (
            '<Address xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" '
            'xsi:nil="1"/>'
        )

        assert deserialiser.deserialise(_stream(xml), Address) is None

    def test_stream_left_open(self, deserialiser: XmlDeserialiser) -> None:
        """The deserialiser reads but does not close the stream."""
        stream = _stream("<Address><City>Rome</City></Address>")

        deserialiser.deserialise(stream, Address)

        assert not stream.closed


class TestRootHandling:
    """Test cases for document root resolution."""

    def test_unexpected_root(self, deserialiser: XmlDeserialiser) -> None:
        """A different document element is rejected."""
        with pytest.raises(XmlDeserialisationError) as exc_info:
            deserialiser.deserialise(_stream("<Place><City>x</City></Place>"), Address)

        assert exc_info.value.model_name == "Address"
        assert "was not expected" in str(exc_info.value)

    def test_root_override_with_namespace(
        self, deserialiser: XmlDeserialiser
    ) -> None:
        """A namespaced root override matches namespace and local name."""
        xml = '<place xmlns="urn:geo"><City>Lima</City></place>'
        root = XmlRoot(element_name="place", namespace="urn:geo")

        address = deserialiser.deserialise(_stream(xml), Address, root=root)

        assert address == Address(City="Lima")

    def test_root_namespace_mismatch(self, deserialiser: XmlDeserialiser) -> None:
        """The right local name in the wrong namespace is rejected."""
        xml = '<place xmlns="urn:other"><City>Lima</City></place>'
        root = XmlRoot(element_name="place", namespace="urn:geo")

        with pytest.raises(XmlDeserialisationError):
            deserialiser.deserialise(_stream(xml), Address, root=root)

    def test_equal_roots_share_a_plan(self, deserialiser: XmlDeserialiser) -> None:
        """Structurally equal XmlRoot values hit the same cache entry."""
        xml = "<place><City>Lima</City></place>"

        deserialiser.deserialise(
            _stream(xml), Address, root=XmlRoot(element_name="place")
        )
        deserialiser.deserialise(
            _stream(xml), Address, root=XmlRoot(element_name="place")
        )

        stats = deserialiser.cache.stats()
        assert (stats.hits, stats.misses) == (1, 1)


class TestOverrides:
    """Test cases for attribute overrides and cache keys."""

    @staticmethod
    def _overrides() -> XmlAttributeOverrides:
        overrides = XmlAttributeOverrides()
        overrides.set_root(Employee, XmlRoot(element_name="employee"))
        overrides.add(
            Employee, "Name", XmlFieldOverride(element_name="name", kind="attribute")
        )
        overrides.add(Employee, "Age", XmlFieldOverride(element_name="age"))
        overrides.add(Employee, "Skills", XmlFieldOverride(element_name="skill"))
        overrides.add(Employee, "Home", XmlFieldOverride(ignore=True))
        overrides.add(Address, "City", XmlFieldOverride(kind="text"))
        return overrides

    def test_overrides_reshape_mapping(self, deserialiser: XmlDeserialiser) -> None:
        """Overrides rename, move to attributes and ignore fields."""
        xml = (
            '<employee name="Kim"><age>51</age><skill>go</skill><skill>sql</skill>'
            "<Home><City>ignored</City></Home></employee>"
        )

        employee = deserialiser.deserialise(
            _stream(xml),
            Employee,
            cache_key="employee-v1",
            overrides=self._overrides(),
        )

        assert employee == Employee(Name="Kim", Age=51, Skills=["go", "sql"])

    def test_text_override(self, deserialiser: XmlDeserialiser) -> None:
        """A text override reads the element's own text."""
        overrides = XmlAttributeOverrides()
        overrides.add(Address, "City", XmlFieldOverride(kind="text"))

        address = deserialiser.deserialise(
            _stream("<Address>Paris</Address>"),
            Address,
            cache_key="address-text",
            overrides=overrides,
        )

        assert address == Address(City="Paris")

    def test_same_key_reuses_plan(self, deserialiser: XmlDeserialiser) -> None:
        """Equal keys hit the cache even with different override objects."""
        xml = '<employee name="Kim"><age>51</age></employee>'
        first, second = self._overrides(), self._overrides()
        assert first is not second

        for overrides in (first, second):
            deserialiser.deserialise(
                _stream(xml),
                Employee,
                cache_key=compute_overrides_key(overrides),
                overrides=overrides,
            )

        stats = deserialiser.cache.stats()
        assert stats.hits == 1
        assert stats.misses == 1

    def test_different_keys_build_separate_plans(
        self, deserialiser: XmlDeserialiser
    ) -> None:
        """Each distinct key builds its own plan."""
        xml = '<employee name="Kim"><age>51</age></employee>'

        for key in ("a", "b"):
            deserialiser.deserialise(
                _stream(xml), Employee, cache_key=key, overrides=self._overrides()
            )

        assert deserialiser.cache.stats().size == 2

    def test_overrides_need_cache_key(self, deserialiser: XmlDeserialiser) -> None:
        """Overrides without a key are rejected."""
        with pytest.raises(InvalidArgumentError) as exc_info:
            deserialiser.deserialise(
                _stream("<Employee/>"), Employee, overrides=self._overrides()
            )

        assert exc_info.value.argument == "cache_key"

    def test_root_and_overrides_conflict(self, deserialiser: XmlDeserialiser) -> None:
        """root and overrides cannot be combined."""
        with pytest.raises(InvalidArgumentError):
            deserialiser.deserialise(
                _stream("<Employee/>"),
                Employee,
                root=XmlRoot(element_name="x"),
                cache_key="k",
                overrides=self._overrides(),
            )

    def test_key_without_overrides(self, deserialiser: XmlDeserialiser) -> None:
        """A lone cache_key is rejected."""
        with pytest.raises(InvalidArgumentError):
            deserialiser.deserialise(_stream("<Employee/>"), Employee, cache_key="k")

    def test_keys_are_tagged_by_call_shape(
        self, deserialiser: XmlDeserialiser
    ) -> None:
        """Root plans and override plans live under separately tagged keys."""
        root = XmlRoot(element_name="employee")
        deserialiser.plan_for(Employee)
        deserialiser.plan_for(Employee, root=root)
        deserialiser.plan_for(Employee, cache_key=root, overrides=self._overrides())

        assert (Employee, "root", None) in deserialiser.cache
        assert (Employee, "root", root) in deserialiser.cache
        assert (Employee, "overrides", root) in deserialiser.cache
        assert deserialiser.cache.stats().size == 3


class TestFailures:
    """Test cases for error reporting."""

    def test_malformed_xml(self, deserialiser: XmlDeserialiser) -> None:
        """Syntax errors are wrapped with position information."""
        with pytest.raises(XmlDeserialisationError) as exc_info:
            deserialiser.deserialise(_stream("<Address><City>x</Address>"), Address)

        assert "line 1" in str(exc_info.value)

    def test_validation_failure(self, deserialiser: XmlDeserialiser) -> None:
        """Type mapping failures chain the pydantic error."""
        xml = "<Employee><Name>Bob</Name><Age>old</Age></Employee>"

        with pytest.raises(XmlDeserialisationError) as exc_info:
            deserialiser.deserialise(_stream(xml), Employee)

        assert isinstance(exc_info.value.__cause__, ValidationError)
        assert exc_info.value.model_name == "Employee"

    def test_non_model_target(self, deserialiser: XmlDeserialiser) -> None:
        """Only pydantic models can be targets."""
        with pytest.raises(InvalidArgumentError):
            deserialiser.deserialise(_stream("<dict/>"), dict)  # type: ignore[type-var]

    def test_external_entities_not_resolved(
        self, deserialiser: XmlDeserialiser
    ) -> None:
        """External entities stay unresolved with the default config."""
        xml = (
            '<?xml version="1.0"?>'
            '<!DOCTYPE Address [<!ENTITY x SYSTEM "file:///etc/hostname">]>'
            "<Address><City>&x;</City></Address>"
        )

        address = deserialiser.deserialise(_stream(xml), Address)

        assert address is not None
        assert address.City == ""


class TestSharedCache:
    """Test cases for cache sharing and concurrency."""

    def test_cache_can_be_shared(self) -> None:
        """Two deserialisers sharing a cache reuse each other's plans."""
        cache = XmlSerializerCache()
        xml = "<Address><City>Kyiv</City></Address>"

        XmlDeserialiser(cache=cache).deserialise(_stream(xml), Address)
        XmlDeserialiser(cache=cache).deserialise(_stream(xml), Address)

        assert cache.stats().hits == 1

    def test_concurrent_calls_build_once(self, deserialiser: XmlDeserialiser) -> None:
        """Parallel calls for one model build a single plan."""
        xml = "<Address><City>Quito</City></Address>"
        results: list[Optional[Address]] = []
        lock = threading.Lock()

        def worker() -> None:
            result = deserialiser.deserialise(_stream(xml), Address)
            with lock:
                results.append(result)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results == [Address(City="Quito")] * 8
        stats = deserialiser.cache.stats()
        assert stats.misses == 1
        assert stats.hits == 7
