"""Index transports.

Every transport implements :class:`IndexClient`:

- ``http``              : :class:`HttpIndexClient`, a single Solr node
- ``lb_http``           : :class:`LoadBalancedIndexClient`, round-robin over nodes
- ``cloud``             : :class:`CloudIndexClient`, SolrCloud leader routing
- ``concurrent_update`` : :class:`ConcurrentUpdateIndexClient`, streaming uploads
- ``elasticsearch``     : :class:`ElasticsearchIndexClient`, bulk + refresh
"""

from .base import AddOperation, DeleteOperation, IndexClient, UpdateRequest
from .cloud import CloudIndexClient
from .concurrent import ConcurrentUpdateIndexClient
from .elastic import ElasticsearchIndexClient
from .factory import ClientProvider, ClientType, create_client, parse_client_type
from .http import HttpIndexClient
from .load_balanced import LoadBalancedIndexClient

__all__ = [
    "AddOperation",
    "DeleteOperation",
    "IndexClient",
    "UpdateRequest",
    "ClientProvider",
    "ClientType",
    "create_client",
    "parse_client_type",
    "HttpIndexClient",
    "LoadBalancedIndexClient",
    "CloudIndexClient",
    "ConcurrentUpdateIndexClient",
    "ElasticsearchIndexClient",
]
