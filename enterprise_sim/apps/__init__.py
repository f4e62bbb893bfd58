"""Endpoint applications installed on simulated nodes.

This module provides the periodic request client and the acknowledging
server that make up the request/response exchange.
"""
