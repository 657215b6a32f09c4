"""DentalHub API package.

Aggregates NexHealth practice data into dashboard reports and serves CRUD
endpoints over the marketing tables of the relational store.
"""

__version__ = "1.0.0"
