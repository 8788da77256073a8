"""
Recommendation engine: turns stored analyses and chat history into a ranked,
summarised set of short advisory items.

Modules
-------
recency      : sort_by_recency() + most_recent() — newest-first ordering.
ids          : deterministic item ids and the default set-id factory.
business     : extract_business_recommendations() — feasibility thresholds.
forecast     : extract_forecast_recommendations() — trend, seasonality, accuracy.
optimization : extract_optimization_recommendations() — feasibility, allocations,
               bottlenecks.
chat         : extract_chat_insights() — keyword buckets over assistant messages.
seasonal     : seasonal_recommendations() — static per-season advice.
engine       : generate_recommendations() + rank_recommendations() + build_summary().
reporter     : write_recommendation_csv() + write_recommendation_json() — file output.
"""
