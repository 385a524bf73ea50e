"""
Shared, cross-cutting code for the API.

`core/` should contain small building blocks that multiple features use
(DB handle, settings, object storage, SMS client, slugs, pagination). Keep
feature-specific SQL and business logic in the corresponding feature
package (e.g. `news/`).
"""
