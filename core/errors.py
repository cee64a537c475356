"""Ingestion error taxonomy.

Every failure the Ingestor can surface is an IngestError subclass with a
stable ``kind`` string so the session can map it to a user-facing message.
"""


class IngestError(Exception):
    kind = "UnknownFetchError"
    user_message = "An unexpected error occurred while fetching data. Please try again."


class InvalidAddress(IngestError):
    """Address failed local validation; no network access was attempted."""

    kind = "InvalidAddress"
    user_message = "Invalid Sui address format. Please check and try again."


class NetworkError(IngestError):
    kind = "NetworkError"
    user_message = "A network error occurred. Please check your connection and try again."


class UnknownFetchError(IngestError):
    kind = "UnknownFetchError"


class SuiRpcError(Exception):
    """The RPC endpoint answered with a JSON-RPC error payload."""

    def __init__(self, code: int, message: str):
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.rpc_message = message
