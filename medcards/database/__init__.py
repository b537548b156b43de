"""
Persistence layer of the MedCards API.

Layers, from the bottom up:
    - config:   settings singleton, SQLAlchemy engine, declarative base, `init_db`
    - entities: ORM models (users, medical cards, templates/entries, categories/links)
    - daos:     one class per aggregate, always handed an open `Session`
    - helpers:  the `@transactional` unit-of-work decorator
    - core:     service functions called by the routers; they return plain dicts
                and raise domain errors instead of HTTP ones
"""
