"""
Schemas module - Request/Response schemas and shared enums.

Everything lives in placement.schemas.schemas:
    from placement.schemas.schemas import EnrollmentStatus, DriveCreate
"""
