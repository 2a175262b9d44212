# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for the Post aggregate:
#
#   post_service     — CRUD + filtered pagination + cache for Post
#   rating_service   — per-user ratings and the derived average
#   comment_service  — append-only comments
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.
