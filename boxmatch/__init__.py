"""Boxing matchmaking core: intent parsing, compliance scoring, ranking and explanation."""
