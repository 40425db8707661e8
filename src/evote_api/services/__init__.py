"""Service layer: business logic orchestrating the store and the decision libraries."""
