# Supabase tables: yl_channels, yl_approval_logs, yl_channel_daily_snapshot, yl_channel_daily_delta,
# yl_batch_logs, yl_videos, yl_keyword_trends

"""
yl_channels:
- channel_id: text (primary key)
- title: text
- handle: text (nullable)
- description: text (nullable)
- custom_url: text (nullable)
- thumbnail_url: text (nullable)
- approval_status: text (pending | approved | rejected)
- approval_notes: text (nullable)
- approved_by: uuid (nullable)
- approved_at: timestamp (nullable)
- source: text (manual | import)
- category / subcategory: text (nullable)
- dominant_format: text (shorts | longform | live | mixed, nullable)
- subscriber_count / view_count_total / video_count: bigint
- created_at / updated_at: timestamp

yl_approval_logs:
- id: uuid (primary key)
- channel_id: text
- action: text (approved | rejected | pending | update | delete)
- actor_id: uuid
- notes: text (nullable)
- created_at: timestamp

yl_channel_daily_snapshot (unique channel_id, date):
- channel_id: text
- date: date
- view_count_total / subscriber_count / video_count: bigint

yl_channel_daily_delta (unique channel_id, date):
- channel_id: text
- date: date
- delta_views: bigint (never negative)
- delta_subscribers: bigint
- growth_rate: numeric(,2) - percent of the previous day's total views

yl_batch_logs:
- id: uuid (primary key)
- function_name: text
- success: boolean
- processed_count: integer
- errors: jsonb
- executed_at: timestamp

yl_videos:
- video_id: text (primary key)
- channel_id: text
- title / description: text
- published_at: timestamp

yl_keyword_trends (unique keyword, date):
- keyword: text
- date: date
- frequency: integer
- channels: text[]
- growth_rate: numeric
- category: text (nullable)
"""
