"""
Data access objects, one per aggregate.

Every method takes the caller's `Session` (opened by a `@transactional`
service), flushes when it writes, logs failures and re-raises them. No DAO
commits, builds HTTP errors or formats wire payloads.

- UserDao: insert with bcrypt hashing; lookup by e-mail or id
- MedicalCardDao: owner-scoped listing with specialty and section filters,
  newest first; owner-restricted fetch; update skipping identity columns;
  delete; public listing
- TemplateDao, EntryDao, CategoryDao, LinkDao: `CatalogDao` subclasses with
  create, fetchAll and fetchById
"""
