"""
ToDo service package.

The FastAPI application lives in ``todo_api.main``; the storage-independent
core is ``todo_api.service.TodoService`` together with the reconciliation
engine in ``todo_api.reconcile``.
"""
