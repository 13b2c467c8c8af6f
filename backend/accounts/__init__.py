# accounts/__init__.py
"""
Accounts app - authentication and multi-tenancy.

This app provides:
- Company: tenant model; every business row belongs to one
- User: custom user model with active_company
- CompanyMembership: user-company relationship with a role
- AccessPermission: fine-grained permission codes
- ActorContext: authorization context passed to every command
"""
