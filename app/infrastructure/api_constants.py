"""
Location store GraphQL documents and client constants.

Centralizing the query text makes it easy to follow schema changes on the
store side without touching the client.
"""


class LocationStoreOperations:
    """GraphQL operations understood by the location store."""

    GET_PROJECT_LOCATIONS = """
    query GetProjectLocations($projectId: Int!) {
      locations(where: {project_id: {_eq: $projectId}}, order_by: {id: asc}) {
        id
        project_id
        location_name
        x
        y
        remarks
      }
    }
    """

    # A single insert mutation runs in one transaction on the store, which is
    # what makes the bulk import all-or-nothing.
    INSERT_LOCATIONS_MANY = """
    mutation InsertLocationsMany($values: [locations_insert_input!]!) {
      insert_locations(objects: $values) {
        affected_rows
        returning {
          id
        }
      }
    }
    """


class APIConstants:
    """General client configuration constants."""

    # HTTP Headers
    CONTENT_TYPE_JSON = "application/json"
    CONTENT_TYPE_CSV = "text/csv"
