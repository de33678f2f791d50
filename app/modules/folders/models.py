# Supabase tables: source_folders, folder_channels

"""
source_folders:
- id: uuid (primary key)
- user_id: uuid (foreign key -> auth.users.id) - owner
- name: text (1-100 chars, unique per user)
- description: text (nullable)
- color: text (default '#3B82F6')
- icon: text (default '📁')
- is_active: boolean (default true)
- channel_count: integer (default 0)
- created_at / updated_at: timestamp

folder_channels:
- id: uuid (primary key)
- folder_id: uuid (foreign key -> source_folders.id)
- channel_id: text - YouTube channel id, unique per folder
- added_at: timestamp
"""
