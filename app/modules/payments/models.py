# Supabase tables: purchases, webhook_events

"""
purchases:
- id: uuid (primary key)
- user_id: uuid (foreign key -> auth.users.id)
- course_id: uuid (foreign key -> courses.id)
- amount: integer - list price
- final_amount: integer - price after coupon
- coupon_id: uuid (nullable, foreign key -> coupons.id)
- payment_method: text (tosspayments | stripe)
- payment_intent_id: text - Toss orderId or Stripe PaymentIntent id
- payment_key: text (nullable) - Toss paymentKey
- status: text (pending | completed | failed | refunded)
- receipt_url: text (nullable)
- approved_at / completed_at / failed_at / refunded_at: timestamp (nullable)
- refund_amount: integer (nullable)
- created_at / updated_at: timestamp

webhook_events:
- id: uuid (primary key)
- provider: text (stripe | youtube)
- event_id: text - unique together with provider
- event_type: text
- payload: jsonb
- processed_at: timestamp
"""
