"""
Design
======

The archive service is the source of truth for ingestion points and import
jobs. Listing them is slow and the service is occasionally unavailable, so each
user's most recent listing is kept in the database for a short time.

General goals:

* The cache is an optimisation, never a dependency. Every read failure turns
  into a miss and every write failure into "not cached"; neither is raised to
  the caller.
* Rows are superseded (``is_active=False``), not deleted, when a user's
  listing is refreshed. At most one active row exists per user and resource
  id for each kind.
* There are no background refreshes. A caller asks for a user's collection,
  and on a miss fetches from the archive and hands the fresh items back.

The pieces:

1. ``models`` holds one concrete model per resource kind. Each keeps the
   original payload verbatim plus a handful of projected columns (name,
   status, ...) extracted with fallbacks by ``extraction``.
2. ``store.SnapshotStore`` is the persistence layer for one model: bulk
   replace with per-item failure isolation, freshness-filtered reads,
   deactivation and statistics.
3. ``cache.ResourceCache`` wraps a store with the kind's freshness window and
   the soft-failure policy described above. ``ingestion_point_cache`` and
   ``import_job_cache`` are the two instances the rest of the project uses.
"""
