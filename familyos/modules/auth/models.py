# Supabase Auth
# Users are managed entirely by Supabase Auth (auth.users). This service never
# issues tokens; it only validates the bearer token a client obtained from
# Supabase and reads the user's family memberships.

"""
Supabase Auth provides:
- auth.get_user() - Get current user from JWT token

Memberships are read from the public.group_members table:
- group_id: uuid (foreign key to family_groups.id)
- user_id: uuid (foreign key to auth.users.id)
- role: text - owner | member | viewer
"""
