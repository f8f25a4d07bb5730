from typing import Any, Optional, Sequence

NOT_SPECIFIED = "Not specified"

RESPONSE_RULES = (
    "Respond with a single JSON object that follows the structure below. "
    "Do not add commentary or Markdown outside the JSON."
)

MEAL_PLAN_SHAPE = """{
  "mealPlan": {
    "day1": {
      "date": "Day 1",
      "meals": {
        "breakfast": {"name": "", "ingredients": [], "calories": 0, "instructions": ""},
        "lunch": {"name": "", "ingredients": [], "calories": 0, "instructions": ""},
        "dinner": {"name": "", "ingredients": [], "calories": 0, "instructions": ""},
        "snacks": [{"name": "", "ingredients": [], "calories": 0, "instructions": ""}]
      },
      "totalCalories": 0,
      "nutritionHighlights": []
    }
  },
  "shoppingList": [],
  "mealPrepTips": [],
  "nutritionalSummary": {"dailyAverageCalories": 0, "proteinFocus": "", "healthBenefits": []}
}"""

WORKOUT_PLAN_SHAPE = """{
  "workoutPlan": {
    "day1": {
      "date": "Day 1",
      "type": "strength/cardio/rest",
      "duration": 0,
      "warmup": {"exercises": [], "duration": 0},
      "mainWorkout": [
        {"name": "", "sets": 0, "reps": "", "rest": "", "instructions": "", "targetMuscles": []}
      ],
      "cooldown": {"exercises": [], "duration": 0},
      "estimatedCalories": 0
    }
  },
  "weeklySchedule": [],
  "progressionTips": [],
  "safetyGuidelines": [],
  "equipmentNeeded": []
}"""

RECOMMENDATIONS_SHAPE = """{
  "recommendations": {
    "nutrition": [],
    "exercise": [],
    "sleep": [],
    "stress": [],
    "preventive": [],
    "lifestyle": []
  },
  "priorityActions": [],
  "healthInsights": []
}"""

MEAL_PLAN_TEMPLATE = """Create a personalized {duration}-day meal plan for this person.

User profile:
{profile}
- Dietary restrictions: {restrictions}
- Additional preferences: {preferences}

Include:
1. Breakfast, lunch, dinner and two snacks for every day
2. Estimated calories per meal and per day
3. Nutritional highlights for each day
4. A shopping list covering the whole plan
5. Meal prep tips

{rules}
{shape}
"""

WORKOUT_PLAN_TEMPLATE = """Create a personalized {duration}-day workout plan for this person.

User profile:
{profile}
- Available equipment: {equipment}
- Additional preferences: {preferences}

Include:
1. Daily routines with exercises, sets, reps and rest periods
2. Estimated calories burned per workout
3. Progressive difficulty across the plan
4. Warm-up and cool-down routines
5. Recovery and rest day guidance
6. Form tips and safety guidelines

{rules}
{shape}
"""

RECOMMENDATIONS_TEMPLATE = """Give personalized health and wellness recommendations for this person.

User profile:
{profile}
- Dietary restrictions: {restrictions}
- Focus area: {focus}

Cover nutrition and hydration, exercise and movement, sleep and recovery,
stress management, preventive health and lifestyle adjustments. Keep every
recommendation practical, evidence-based and specific to this profile, with
concrete actionable steps.

{rules}
{shape}
"""


def _value(value: Any, suffix: str = "", missing: str = NOT_SPECIFIED) -> str:
    if value is None or value == "":
        return missing
    return f"{value}{suffix}"


def _joined(values: Optional[Sequence[str]], missing: str) -> str:
    cleaned = [str(value).strip() for value in (values or []) if str(value).strip()]
    return ", ".join(cleaned) if cleaned else missing


def _text(value: Optional[str], missing: str = "none") -> str:
    return (value or "").strip() or missing


def render_profile(profile: dict[str, Any], goals_fallback: str = "general health") -> str:
    lines = [
        f"- Age: {_value(profile.get('age'))}",
        f"- Gender: {_value(profile.get('gender'))}",
        f"- Height: {_value(profile.get('height'), ' cm')}",
        f"- Weight: {_value(profile.get('weight'), ' kg')}",
        f"- BMI: {_value(profile.get('current_bmi'), missing='Not calculated')}",
        f"- Activity level: {_value(profile.get('activity_level'), missing='moderately_active')}",
        f"- Goals: {_joined(profile.get('goals'), goals_fallback)}",
    ]
    return "\n".join(lines)


def build_meal_plan_prompt(profile: dict[str, Any], preferences: Optional[str], duration: int) -> str:
    return MEAL_PLAN_TEMPLATE.format(
        duration=duration,
        profile=render_profile(profile),
        restrictions=_joined(profile.get("dietary_restrictions"), "none"),
        preferences=_text(preferences),
        rules=RESPONSE_RULES,
        shape=MEAL_PLAN_SHAPE,
    )


def build_workout_plan_prompt(
    profile: dict[str, Any], preferences: Optional[str], duration: int, equipment: Sequence[str]
) -> str:
    return WORKOUT_PLAN_TEMPLATE.format(
        duration=duration,
        profile=render_profile(profile, goals_fallback="general fitness"),
        equipment=_joined(equipment, "bodyweight exercises"),
        preferences=_text(preferences),
        rules=RESPONSE_RULES,
        shape=WORKOUT_PLAN_SHAPE,
    )


def build_recommendations_prompt(profile: dict[str, Any], focus: Optional[str]) -> str:
    return RECOMMENDATIONS_TEMPLATE.format(
        profile=render_profile(profile),
        restrictions=_joined(profile.get("dietary_restrictions"), "none"),
        focus=_text(focus, missing="general"),
        rules=RESPONSE_RULES,
        shape=RECOMMENDATIONS_SHAPE,
    )
