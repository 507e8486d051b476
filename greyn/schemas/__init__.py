"""
Pydantic request / response schemas.
"""
