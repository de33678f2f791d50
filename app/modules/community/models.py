# Supabase tables: community_posts, community_comments, community_likes

"""
community_posts:
- id: uuid (primary key)
- user_id: uuid (references profiles.id)
- category: text (board | qna | study)
- title: text (2-100 chars)
- content: text (10-10000 chars)
- tags: text[]
- is_pinned: boolean (default false)
- view_count: integer (default 0)
- created_at / updated_at: timestamp

community_comments:
- id: uuid (primary key)
- post_id: uuid (references community_posts.id, on delete cascade)
- user_id: uuid
- content: text
- created_at / updated_at: timestamp

community_likes:
- id: uuid (primary key)
- post_id: uuid (references community_posts.id, on delete cascade)
- user_id: uuid
- unique (post_id, user_id)

RPC increment_post_view_count(post_id uuid) bumps view_count atomically.
"""
