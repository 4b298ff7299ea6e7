"""Authentication and authorization.

Learn: Registration issues a stateless JWT whose subject is the new user id.
Every note route then passes through the AuthorizationGuard, which verifies
the token and requires its subject to match the user id in the path.
"""
