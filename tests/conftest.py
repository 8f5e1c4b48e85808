"""Pytest configuration and shared fixtures for archlayout tests."""

import pytest

from archlayout import DiagramGenerator, GroupSpec, SizedEdge, SizedGraph, SizedNode, Spacing


@pytest.fixture
def c4_input():
    """C4 context diagram with a boundary and a labelled relationship."""
    return """
    C4Context
    title Internet Banking
    Person(customer, "Customer", "A bank customer")
    System_Boundary(bank, "Bank") {
        Container(api, "API", "Python", "Serves JSON")
        ContainerDb(db, "Database", "PostgreSQL")
    }
    System_Ext(mail, "Mail System")
    Rel(customer, api, "Uses", "HTTPS")
    Rel(api, db, "Reads")
    Rel(api, mail, "Sends e-mail")
    """


@pytest.fixture
def archimate_input():
    """ArchiMate view spanning three layers."""
    return """
    archimate-layered
      business:
        actor Customer
        service "Online Banking" as OB
      application:
        component "Web App" as WA
      technology:
        node Server
      Customer -->|serving| OB
      OB --> WA
      WA -->|realization| Server
    """


@pytest.fixture
def class_input():
    """Class diagram with members, a namespace and cardinalities."""
    return """
    classDiagram
      class Animal {
        <<abstract>>
        +String name
        +speak()* String
      }
      Animal <|-- Dog : extends
      Owner "1" o-- "many" Dog
      namespace Zoo {
        class Keeper
      }
    """


@pytest.fixture
def generator():
    """Default DiagramGenerator instance."""
    return DiagramGenerator()


@pytest.fixture
def chain_graph():
    """A -> B -> C with fixed box sizes."""
    return SizedGraph(
        nodes=[
            SizedNode("A", 100, 40),
            SizedNode("B", 80, 40),
            SizedNode("C", 120, 60),
        ],
        edges=[SizedEdge("A", "B"), SizedEdge("B", "C")],
        spacing=Spacing(),
    )


@pytest.fixture
def grouped_graph():
    """Two nested groups with an outside node and crossing edges."""
    return SizedGraph(
        nodes=[
            SizedNode("user", 100, 60),
            SizedNode("api", 120, 50),
            SizedNode("db", 120, 50),
            SizedNode("cache", 90, 50),
            SizedNode("mail", 100, 40),
        ],
        edges=[
            SizedEdge("user", "api", label="Uses", label_width=40, label_height=16),
            SizedEdge("api", "db"),
            SizedEdge("api", "cache"),
            SizedEdge("api", "mail"),
        ],
        groups=[
            GroupSpec(
                id="system",
                label="System",
                member_ids=["api"],
                children=[GroupSpec(id="storage", label="Storage", member_ids=["db", "cache"])],
            )
        ],
    )
