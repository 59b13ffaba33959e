# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access:
#
#   category_resolver: get-or-create of a category inside a user's tree
#   content_service  : saved links: add / batch add / update / favorite / delete + reads
#   category_service : explicit category add / rename / delete + reads
#   user_service     : user aggregate loading and sign-up
#   link_preview     : the link metadata collaborator interface
#   summarizer       : the document summarizer collaborator interface
#   categorizer      : the link categorizer collaborator interface
#
# All service functions accept an AsyncSession as their first argument.
# For mutations that session comes from a UnitOfWork opened by the router,
# which owns the commit/rollback; services only flush.
