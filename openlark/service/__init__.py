"""
Service layer - typed builders and endpoint wrappers.

Each service turns typed arguments into an ApiRequest and hands it to the
shared Transport together with the client's TokenStore.
"""
