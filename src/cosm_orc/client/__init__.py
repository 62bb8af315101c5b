"""
Client - chain interaction layer for cosm-orc.

Provides the Tendermint JSON-RPC transport, fee resolution, the
transaction pipeline and a CosmWasm contract client.

Uses httpx + cosmpy protobufs; gRPC is only used for gas simulation
when a gRPC endpoint is configured.
"""
