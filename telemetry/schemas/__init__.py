# Request/response schemas
