# Argument Quality Services
#
# Everything between "a user typed an argument" and "it has a 0-100 score":
# - ArgumentAnalyzer asks the model for a four-dimension analysis
# - parse_analysis turns the raw payload into a typed QualityAnalysis
# - calculate_quality_score / classify_quality apply the scoring policy
# - SteelManValidator judges steel-man reformulations
