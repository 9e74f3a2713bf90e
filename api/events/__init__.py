"""
Event records: create, list and fetch-by-id.

`router` holds the HTTP surface, `models` the domain rules and errors,
`repository` the SQL.
"""
