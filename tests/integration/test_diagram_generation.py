"""Integration tests for complete diagram generation.

These tests run realistic diagrams of each family through the whole
pipeline, from text to SVG and text art.
"""

import pytest

from archlayout import THEMES, DiagramColors, DiagramGenerator

CONTAINER_VIEW = """
C4Container
title Online Shop
Person(shopper, "Shopper", "Buys things")
Person_Ext(admin, "Admin")
Enterprise_Boundary(corp, "Shop Inc") {
    System_Boundary(shop, "Shop") {
        Container(web, "Web App", "React", "Storefront")
        Container(api, "API", "Go")
        ContainerQueue(queue, "Orders", "Kafka")
        ContainerDb(db, "Database", "Postgres")
    }
}
System_Ext(pay, "Payments")
Rel(shopper, web, "Browses", "HTTPS")
Rel(web, api, "Calls", "JSON")
Rel(api, db, "Reads/writes")
Rel(api, queue, "Publishes")
BiRel(api, pay, "Charges")
Rel_U(db, admin, "Reports")
Rel(queue, api, "Consumes")
"""

LAYERED_VIEW = """
archimate-layered
  %% full stack view
  strategy:
    capability "Sell Online" as Sell
  business:
    actor Customer
    role Buyer
    process "Place Order" as PO
    service "Ordering" as OS
  application:
    component "Order App" as OA
    service "Order API" as API
    dataObject Order
  technology:
    node "App Server" as AS
    systemSoftware Postgres
  Customer -->|assignment| Buyer
  Buyer -->|triggering| PO
  PO -->|realization| OS
  OS -->|serving| Customer
  OA -->|realization| API
  API -->|serving| PO
  OA -->|access| Order
  AS -->|serving| OA
  Postgres -->|composition| AS
  Sell -->|realization| OS
"""

ZOO = """
classDiagram
  class Animal {
    <<abstract>>
    +String name
    -int age
    +speak()* String
    +eat(food) void
  }
  class Repository~T~ {
    +save(T item) void
    +find(int id) T
  }
  <<interface>> Repository
  Animal <|-- Dog
  Animal <|-- Cat
  Dog ..|> Pet
  Owner "1" o-- "*" Pet : owns
  Zoo *-- Enclosure
  Enclosure --> Animal
  AnimalRepository ..> Repository
  Dog : +bark() void
  namespace Staff {
    class Keeper
    class Vet
  }
  Keeper --> Enclosure : cleans
  Vet ..> Animal
"""


class TestC4Generation:
    """End-to-end C4 diagrams."""

    def test_container_view_svg(self, generator):
        """Nested boundaries and all relationship kinds render to SVG."""
        svg = generator.generate_svg(CONTAINER_VIEW)
        for text in ("Online Shop", "Shopper", "Shop Inc", "Orders", "[Kafka]", "Charges"):
            assert text in svg
        assert svg.count("<circle") >= 2

    def test_container_view_ascii(self, generator):
        """The same view renders as text art with every element."""
        art = generator.generate_ascii(CONTAINER_VIEW)
        assert art.startswith("Online Shop\n\n")
        for text in ("Shopper", "Admin", "Web App", "Database", "Payments", "Browses [HTTPS]"):
            assert text in art

    def test_nested_boundaries_contain_members(self, generator):
        """Inner boundaries sit inside outer ones and around their elements."""
        graph = generator.layout(CONTAINER_VIEW)
        corp = graph.groups[0]
        shop = corp.children[0]
        assert corp.x <= shop.x and shop.right <= corp.right
        assert corp.y <= shop.y and shop.bottom <= corp.bottom
        for alias in ("web", "api", "queue", "db"):
            node = graph.node(alias)
            assert shop.x <= node.x and node.right <= shop.right
        for alias in ("shopper", "admin", "pay"):
            node = graph.node(alias)
            assert not (corp.x <= node.x and node.right <= corp.right
                        and corp.y <= node.y and node.bottom <= corp.bottom)

    def test_rel_up_places_target_above(self, generator):
        """Rel_U puts the target above the source."""
        graph = generator.layout(CONTAINER_VIEW)
        assert graph.node("admin").bottom <= graph.node("db").y


class TestArchimateGeneration:
    """End-to-end ArchiMate views."""

    def test_layered_view(self, generator):
        """Every layer band and element is drawn."""
        svg = generator.generate_svg(LAYERED_VIEW)
        for text in ("Strategy", "Business", "Application", "Technology", "Place Order", "App Server"):
            assert text in svg

    def test_band_order(self, generator):
        """Bands stack strategy, business, application, technology."""
        graph = generator.layout(LAYERED_VIEW)
        kinds = [g.kind for g in sorted(graph.groups, key=lambda g: g.y)]
        assert kinds == ["strategy", "business", "application", "technology"]
        for upper, lower in zip(graph.groups, graph.groups[1:]):
            assert upper.bottom <= lower.y

    def test_ascii(self, generator):
        """Text art shows type labels."""
        art = generator.generate_ascii(LAYERED_VIEW, use_ascii=True)
        for text in ("<<Capability>>", "<<Data Object>>", "<<System Software>>", "Order App"):
            assert text in art


class TestClassGeneration:
    """End-to-end class diagrams."""

    def test_svg(self, generator):
        """Generics, annotations and namespaces are drawn."""
        svg = generator.generate_svg(ZOO)
        for text in ("Repository&lt;T&gt;", "interface", "Staff", "owns", "cleans", "+ bark(): void"):
            assert text in svg

    def test_ascii(self, generator):
        """Text art has every class and the relationship markers."""
        art = generator.generate_ascii(ZOO)
        for name in ("Animal", "Dog", "Cat", "Pet", "Owner", "Zoo", "Enclosure", "Keeper", "Vet"):
            assert name in art
        assert "△" in art
        assert "◆" in art

    def test_edges_touch_boxes(self, generator):
        """Every edge route starts and ends on its node borders."""
        graph = generator.layout(ZOO)
        for edge in graph.edges:
            if edge.source == edge.target:
                continue
            for point, node_id in ((edge.points[0], edge.source), (edge.points[-1], edge.target)):
                node = graph.node(node_id)
                on_x = node.x - 1e-6 <= point.x <= node.right + 1e-6
                on_y = node.y - 1e-6 <= point.y <= node.bottom + 1e-6
                assert on_x and on_y
                assert (
                    abs(point.x - node.x) < 1e-6
                    or abs(point.x - node.right) < 1e-6
                    or abs(point.y - node.y) < 1e-6
                    or abs(point.y - node.bottom) < 1e-6
                )

    def test_routes_are_orthogonal(self, generator):
        """Every segment is horizontal or vertical."""
        graph = generator.layout(ZOO)
        for edge in graph.edges:
            for a, b in zip(edge.points, edge.points[1:]):
                assert abs(a.x - b.x) < 1e-6 or abs(a.y - b.y) < 1e-6


class TestDeterminism:
    """Repeated runs give identical output."""

    @pytest.mark.parametrize("text", [CONTAINER_VIEW, LAYERED_VIEW, ZOO])
    def test_repeatable(self, text):
        """Two fresh generators produce the same SVG and text art."""
        first, second = DiagramGenerator(), DiagramGenerator()
        assert first.generate_svg(text) == second.generate_svg(text)
        assert first.generate_ascii(text) == second.generate_ascii(text)


class TestThemes:
    """Every built-in theme renders."""

    @pytest.mark.parametrize("name", sorted(THEMES))
    def test_theme(self, generator, name):
        """Theme backgrounds reach the document."""
        svg = generator.generate_svg(ZOO, colors=THEMES[name])
        assert THEMES[name].bg in svg

    def test_translucent_foreground(self, generator):
        """Eight-digit hex colours are accepted."""
        svg = generator.generate_svg(ZOO, colors=DiagramColors(bg="#101010", fg="#ffffffcc"))
        assert "<svg" in svg
