# Supabase tables: cards, documents, events, lists, subscriptions, notes
# This file documents the envelope every governed resource table shares
# Actual operations are handled via familyos.core.enforcement

"""
Envelope columns present on every governed resource table:
- id: uuid (primary key)
- group_id: uuid (foreign key to family_groups.id, ON DELETE CASCADE) - immutable
- created_by: uuid (foreign key to auth.users.id) - immutable, must equal the creator
- edit_mode: text (default: 'public') - values: private, public; NULL on legacy rows
- updated_by: uuid (foreign key to auth.users.id) - stamped by the server
- updated_at: timestamptz (default: now()) - stamped by the server, used for compare-and-set
- created_at: timestamptz (default: now())

documents additionally keeps the legacy uploaded_by column, which stands in
for created_by on rows uploaded before the envelope existed.
"""
