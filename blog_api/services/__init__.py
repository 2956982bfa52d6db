# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for one concern:
#
#   auth_service      registration + password login, token issuance
#   category_service  category listing (cached) + creation
#   post_service      post reads, writes, search and view counting
#   comment_service   append-only comments on a post
#   resolver          id-or-slug lookup shared by posts and categories
#   permissions       ownership-or-admin guard for post update/delete
#   slugs             slug derivation and pre-persistence assignment
#
# Service functions accept an AsyncSession as their first argument so that
# the router layer controls the transaction boundary via ``get_db``.
