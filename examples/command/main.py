import sys

from rdflib import Graph

from graphstore import RemoteGraphStore, TransportSingleton
from graphstore.config.loader import get_file_config
from graphstore.logger import get_logger, setup_structlog

if __name__ == "__main__":
    # python main.py http://localhost:3030/ds/data http://example.org/graphs/people
    setup_structlog(log_level="DEBUG", json_logs=False)
    logger = get_logger(__name__)

    data_server_uri, graph_uri = sys.argv[1], sys.argv[2]

    # proxy.json holds socksProxyHost / socksProxyPort / ssl.insecure,
    # otherwise they are read from the environment
    config = get_file_config("proxy.json")
    TransportSingleton.ensure_initialized(config, connect_timeout=10, read_timeout=60)

    store = RemoteGraphStore(data_server_uri)
    if not store.contains_named_graph(graph_uri):
        store.create_named_graph(graph_uri, Graph())

    graph = store.get_named_graph(graph_uri)
    if graph is None:
        logger.warning("Named graph disappeared", graph_uri=graph_uri)
    else:
        logger.info("Named graph loaded", graph_uri=graph_uri, triples=len(graph))
