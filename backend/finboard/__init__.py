"""
Finboard backend package.

Routers are grouped by domain area:
- auth: email/password sign-up, sign-in and sign-out (session cookie)
- me: session introspection and the caller's phone number
- users: admin-only user management
- income: income/expense transactions, scoped by owner
- reports: totals, daily series and Excel export
- health: health and usage for the admin dashboard
- pages: server-side page gate returning view models
"""
