# Network package: re-export the request dispatcher and request handle.

from scriptapi.network.network import Network as Network
from scriptapi.network.request import (
    NetworkRequest as NetworkRequest,
    RequestState as RequestState,
)
