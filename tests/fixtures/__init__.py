"""
Pytest fixtures for the ModuleRepo test suite.

- http_mocking: two-mirror registry stub on httpx.MockTransport
"""
