"""
Cross-cutting database helpers.

- transactionManagement
    `@transactional`: hands service functions a `session` keyword argument,
    shares it with nested services through `db_session_context`, commits once
    at the outermost call and rolls back on any exception.
"""
