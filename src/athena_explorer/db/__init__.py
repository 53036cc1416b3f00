"""Athena query execution.

The pieces stack as:
  - AthenaConnection : lazily opened boto3 session (athena + s3 clients)
  - AthenaClient     : the Athena/S3 calls this package relies on
  - ResultMaterializer: paged GetQueryResults or bulk CSV from S3 -> RowSet
  - QueryEngine      : submit, poll to a terminal state, materialize
"""
