# Supabase Auth
# No custom tables: auth.users holds credentials and sessions.

"""
Supabase Auth provides:
- auth.sign_up() / auth.sign_in_with_password() / auth.sign_out()
- auth.get_user(jwt) - resolve the user behind a bearer token
- auth.admin.update_user_by_id() - service role only, used to set app_metadata

Admin users carry app_metadata.type == "super_user" (or app_metadata.role == "admin");
app_metadata cannot be changed by the user. ADMIN_EMAILS is an additional allow-list.
Profile data lives in public.profiles (see modules/users/models.py).
"""
