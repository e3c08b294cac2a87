from http import HTTPMethod, HTTPStatus

import httpx
from rdflib import Graph

from graphstore.errors import TransportError
from graphstore.logger import get_logger
from graphstore.networking.connection_pooling.connectors.transport_singleton import (
    TransportSingleton,
)
from graphstore.store.base import GraphStore

logger = get_logger(__name__)

TURTLE = "text/turtle"
ACCEPT = (
    "text/turtle, application/n-triples;q=0.9, "
    "application/rdf+xml;q=0.8, application/ld+json;q=0.7"
)


class RemoteGraphStore(GraphStore):
    """Graph store backed by a SPARQL 1.1 Graph Store HTTP Protocol endpoint
    (for instance a Fuseki dataset's ``/data`` service).

    Every operation is a single blocking HTTP exchange, without retries. Any
    failure is raised as :class:`TransportError`, except a 404: reading a
    missing graph returns None and deleting it does nothing.

    Args:
        data_server_uri: URI of the graph store endpoint
        client: HTTP client to use; the process-wide transport when omitted
    """

    def __init__(self, data_server_uri: str, client: httpx.Client | None = None):
        self.data_server_uri = data_server_uri
        self.client = (
            client if client is not None else TransportSingleton.ensure_initialized()
        )

    def _graph_url(self, graph_uri: str | None) -> httpx.URL:
        url = httpx.URL(self.data_server_uri)
        if graph_uri is None:
            return url.copy_with(query=b"default")
        return url.copy_merge_params({"graph": graph_uri})

    def _exchange(
        self,
        operation: str,
        method: HTTPMethod,
        graph_uri: str | None = None,
        graph: Graph | None = None,
        missing_ok: bool = False,
    ) -> httpx.Response:
        target_uri = graph_uri or self.data_server_uri
        headers = {}
        content = None
        if graph is not None:
            content = graph.serialize(format="turtle", encoding="utf-8")
            headers["content-type"] = f"{TURTLE}; charset=utf-8"
        if method == HTTPMethod.GET:
            headers["accept"] = ACCEPT

        try:
            response = self.client.request(
                method, self._graph_url(graph_uri), content=content, headers=headers
            )
            if not (missing_ok and response.status_code == HTTPStatus.NOT_FOUND):
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"{operation} failed", target_uri=target_uri, error=str(e))
            raise TransportError(operation, target_uri, e) from e

        logger.debug(
            f"{operation} done", target_uri=target_uri, status=response.status_code
        )
        return response

    def _parse(self, operation: str, target_uri: str, response: httpx.Response) -> Graph:
        media_type = response.headers.get("content-type", TURTLE).split(";")[0].strip()
        graph = Graph()
        try:
            graph.parse(data=response.content, format=media_type or TURTLE)
        except Exception as e:
            logger.error(
                f"{operation} returned an unreadable graph",
                target_uri=target_uri,
                media_type=media_type,
            )
            raise TransportError(operation, target_uri, e) from e
        return graph

    # CRUD for the default graph

    def get_default_graph(self) -> Graph | None:
        response = self._exchange("get_default_graph", HTTPMethod.GET, missing_ok=True)
        if response.status_code == HTTPStatus.NOT_FOUND:
            return None
        return self._parse("get_default_graph", self.data_server_uri, response)

    def replace_default_graph(self, graph: Graph) -> None:
        self._exchange("replace_default_graph", HTTPMethod.PUT, graph=graph)

    def add_to_default_graph(self, graph: Graph) -> None:
        self._exchange("add_to_default_graph", HTTPMethod.POST, graph=graph)

    def clear_default_graph(self) -> None:
        self._exchange("clear_default_graph", HTTPMethod.DELETE)

    # CRUD for named graphs

    def contains_named_graph(self, graph_uri: str) -> bool:
        response = self._exchange(
            "contains_named_graph", HTTPMethod.HEAD, graph_uri, missing_ok=True
        )
        return response.status_code != HTTPStatus.NOT_FOUND

    def get_named_graph(self, graph_uri: str) -> Graph | None:
        response = self._exchange(
            "get_named_graph", HTTPMethod.GET, graph_uri, missing_ok=True
        )
        if response.status_code == HTTPStatus.NOT_FOUND:
            return None
        return self._parse("get_named_graph", graph_uri, response)

    def delete_named_graph(self, graph_uri: str) -> None:
        # deleting a missing graph is a no-op
        self._exchange(
            "delete_named_graph", HTTPMethod.DELETE, graph_uri, missing_ok=True
        )

    def replace_named_graph(self, graph_uri: str, graph: Graph) -> None:
        self._exchange("replace_named_graph", HTTPMethod.PUT, graph_uri, graph)

    def add_to_named_graph(self, graph_uri: str, graph: Graph) -> None:
        self._exchange("add_to_named_graph", HTTPMethod.POST, graph_uri, graph)

    def create_named_graph(self, graph_uri: str, graph: Graph) -> None:
        self._exchange("create_named_graph", HTTPMethod.PUT, graph_uri, graph)
