from abc import ABC, abstractmethod

from rdflib import Graph


class GraphStore(ABC):
    """An RDF dataset: a collection of named graphs and one default
    (background, unnamed) graph."""

    # CRUD for the default graph

    @abstractmethod
    def get_default_graph(self) -> Graph | None:
        """Return the default graph, or None if the store has none."""

    @abstractmethod
    def replace_default_graph(self, graph: Graph) -> None:
        """Replace the default graph by ``graph``."""

    @abstractmethod
    def add_to_default_graph(self, graph: Graph) -> None:
        """Add the triples of ``graph`` to the default graph."""

    @abstractmethod
    def clear_default_graph(self) -> None:
        """Remove every triple of the default graph."""

    # CRUD for named graphs

    @abstractmethod
    def contains_named_graph(self, graph_uri: str) -> bool:
        """Tell whether the dataset has a graph named ``graph_uri``."""

    @abstractmethod
    def get_named_graph(self, graph_uri: str) -> Graph | None:
        """Return the graph named ``graph_uri``, or None if there is no such graph."""

    @abstractmethod
    def delete_named_graph(self, graph_uri: str) -> None:
        """Delete the graph named ``graph_uri``; a missing graph is left as is."""

    @abstractmethod
    def replace_named_graph(self, graph_uri: str, graph: Graph) -> None:
        """Replace the graph named ``graph_uri`` by ``graph``."""

    @abstractmethod
    def add_to_named_graph(self, graph_uri: str, graph: Graph) -> None:
        """Add the triples of ``graph`` to the graph named ``graph_uri``."""

    @abstractmethod
    def create_named_graph(self, graph_uri: str, graph: Graph) -> None:
        """Create the graph named ``graph_uri`` with the triples of ``graph``."""
