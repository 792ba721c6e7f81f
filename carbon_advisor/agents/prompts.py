RECOMMENDATION_SYSTEM_PROMPT = (
    "You are an expert carbon footprint advisor. Provide specific, actionable "
    "recommendations for reducing carbon emissions. Always respond with valid JSON format."
)

PREDICTION_SYSTEM_PROMPT = (
    "You are a data scientist specializing in carbon emission analysis and prediction. "
    "Always respond with valid JSON format."
)

BEHAVIOR_SYSTEM_PROMPT = (
    "You are a behavioral analyst specializing in sustainability habits and carbon reduction. "
    "Always respond with valid JSON format."
)

SYSTEM_PROMPTS = {
    "recommendation": RECOMMENDATION_SYSTEM_PROMPT,
    "prediction": PREDICTION_SYSTEM_PROMPT,
    "behavior": BEHAVIOR_SYSTEM_PROMPT,
}

NOT_SPECIFIED = "Not specified"

RECOMMENDATION_PROMPT_TEMPLATE = """Generate 3-4 specific carbon reduction recommendations for this user:

Carbon Footprint: $carbon_footprint
Location: $location
Lifestyle: $lifestyle
Preferences: $preferences
Budget: $budget

For each recommendation, provide:
1. type (one of: reduction, purchase, optimization, behavioral)
2. title (concise, actionable)
3. description (specific action to take)
4. impact (estimated CO2 reduction in tons/year, number >= 0)
5. confidence (integer 0-100)
6. category (energy, transport, lifestyle, etc.)
7. action_steps (array of 3-4 specific steps)
8. estimated_cost (estimated cost in USD, 0 if free)
9. timeframe (how long to implement)
10. priority (one of: low, medium, high, critical)
11. reward_potential (estimated token rewards, integer >= 0)

Respond with a JSON array of recommendation objects. No markdown, no extra text.
"""

PREDICTION_PROMPT_TEMPLATE = """Analyze this carbon emission data and predict future trends:

Monthly emissions: $monthly_emissions tons CO2
Series summary: $series_summary
Key activities: $activities
Consider seasonal factors: $seasonal_factors

Respond with a single JSON object containing:
- predictedEmissions (number): predicted emissions for next quarter
- trend (string): "increasing", "decreasing", or "stable"
- factors (array): key factors influencing the prediction
- confidence (number): confidence level 0-100
- timeframe (string): prediction timeframe
"""

BEHAVIOR_PROMPT_TEMPLATE = """Analyze user behavior patterns for carbon impact:

Recent activities (last $recent_days days): $recent_activities
Average per activity: $activity_averages
Identified patterns: $patterns
User goals: $goals

Respond with a single JSON object containing:
- insights (array): key behavioral insights
- behavior_score (number): overall behavior score 0-100
- improvement_suggestions (array): specific improvement suggestions
- habit_recommendations (array): recommended habits to adopt
"""
