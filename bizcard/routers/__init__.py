"""HTML routers: landing page, auth forms, the admin editor and public cards."""
