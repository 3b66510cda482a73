"""
Permission feature module.

Role -> capability mapping, principals and the audit trail for agency,
division, employee and jurisdiction changes.
"""
