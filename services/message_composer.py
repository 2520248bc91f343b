# services/message_composer.py

import asyncio
import os
import random
from typing import Dict, List, Optional
from pydantic import BaseModel
from models.notification_schemas import Tone, NotificationCategory, DEFAULT_TONE

PUSH_MAX_LENGTH = 120
SMS_MAX_LENGTH = 160

class MessageStats(BaseModel):
    current_ml: int = 0
    goal_ml: int = 2000
    progress_percent: int = 0
    streak: int = 0
    name: Optional[str] = None
    milestone_label: Optional[str] = None

CATEGORY_PROMPTS: Dict[NotificationCategory, str] = {
    NotificationCategory.SIP: "a quick sip of water right now",
    NotificationCategory.GLASS: "drinking a full glass of water",
    NotificationCategory.WALK: "getting up, walking to refill their bottle and drinking",
    NotificationCategory.DRINK: "drinking some water right now",
    NotificationCategory.HERBAL_TEA: "having a cup of herbal tea to count towards hydration",
    NotificationCategory.MILESTONE: "celebrating the daily milestone they just reached and keeping going",
    NotificationCategory.STREAK: "keeping their daily hydration streak alive today",
}

# The default tone covers every category; other tones may cover a subset
FALLBACK_MESSAGES: Dict[Tone, Dict[NotificationCategory, List[str]]] = {
    Tone.KIND: {
        NotificationCategory.SIP: [
            "A small sip is a kind thing to do for yourself 💧",
            "Gentle nudge: take a sip, you're at {progress_percent}% 💙",
        ],
        NotificationCategory.GLASS: [
            "How about a full glass of water? You're doing great at {progress_percent}% 💙",
            "Your body will thank you for another glass of water 🌟",
        ],
        NotificationCategory.WALK: [
            "Stretch your legs and refill your bottle 🚶💧",
            "A short walk to the tap counts as self-care 💙",
        ],
        NotificationCategory.DRINK: [
            "Gentle reminder to hydrate! You're doing great at {progress_percent}% 💙",
            "Every sip counts! Keep up the good work 💧",
            "{current_ml}ml so far. Time for a little more water 🌟",
        ],
        NotificationCategory.HERBAL_TEA: [
            "A warm herbal tea counts too. Enjoy a cup 🍵",
            "Tea time! Herbal tea keeps you hydrated 🍵💙",
        ],
        NotificationCategory.MILESTONE: [
            "Milestone reached: {milestone_label}! {current_ml}ml and counting 🎉",
            "You hit {milestone_label}! Lovely work, keep sipping 💙",
        ],
        NotificationCategory.STREAK: [
            "{streak} days in a row! Keep your streak going today 🔥",
            "Your {streak}-day streak is waiting for today's water 💙",
        ],
    },
    Tone.FUNNY: {
        NotificationCategory.DRINK: [
            "Your water bottle is feeling neglected! {current_ml}ml down, keep going! 💧😄",
            "H2-Oh no! Time for more water! You're at {progress_percent}% 🚰",
            "Your cells are sending thirsty texts! Hydrate now! 💦📱",
        ],
        NotificationCategory.SIP: [
            "Sip happens. Make it happen now 😄💧",
        ],
    },
    Tone.MOTIVATIONAL: {
        NotificationCategory.DRINK: [
            "Power up with H2O! You're {progress_percent}% to your goal! 💪",
            "Champions hydrate! Keep pushing forward! 🏆",
            "Fuel your success with water! You've got this! 🚀",
        ],
        NotificationCategory.MILESTONE: [
            "{milestone_label} smashed! On to the next one! 🏆",
        ],
    },
    Tone.SARCASTIC: {
        NotificationCategory.DRINK: [
            "Oh look, your water goal is still waiting... {progress_percent}% done 🙄",
            "Shocking news: your body still needs water! Who knew? 💧",
            "Your hydration game could use some work... just saying 😏",
        ],
    },
    Tone.STRICT: {
        NotificationCategory.DRINK: [
            "Drink water. Now. No excuses. {progress_percent}% completed. 🧐",
            "Hydration is not optional. Get back to it! 💪",
            "Your goal won't reach itself. Drink up! 🚰",
        ],
        NotificationCategory.GLASS: [
            "One full glass. Now. 🧐",
        ],
    },
    Tone.SUPPORTIVE: {
        NotificationCategory.DRINK: [
            "You're doing amazing! Time for some self-care hydration 🤗",
            "I believe in you! Another glass will get you closer 💕",
            "You've got this! Your health journey continues with water 🌈",
        ],
    },
    Tone.CRASS: {
        NotificationCategory.DRINK: [
            "Seriously, drink some bloody water! {progress_percent}% ain't enough! 💥",
            "Your hydration game is weak! Step it up! 🔥",
            "Stop making excuses and chug that H2O! 💪",
        ],
    },
    Tone.WEIGHTLOSS: {
        NotificationCategory.DRINK: [
            "Water boosts metabolism! Drink up for those weight goals! 🏋️‍♀️",
            "Every glass supports your goals! Keep going! 🔥",
            "Hydration = weight loss success! You're {progress_percent}% there! 💪",
        ],
    },
}

def _truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length - 1].rstrip() + "…"

class MessageComposer:
    def __init__(self, generator=None, timeout: Optional[float] = None, rng: Optional[random.Random] = None):
        self.generator = generator
        self.timeout = timeout if timeout is not None else float(os.getenv("TEXT_GENERATION_TIMEOUT_SECONDS", "8"))
        self.rng = rng or random.Random()

    def build_prompt(self, category: NotificationCategory, tone: Tone, stats: MessageStats, max_length: int) -> str:
        user_name = stats.name or "there"
        hints = []
        if stats.progress_percent < 25:
            hints.append("User needs encouragement to get started.")
        elif stats.progress_percent < 75:
            hints.append("User is making good progress, motivate them to keep going.")
        else:
            hints.append("User is close to their goal, cheer them on to the finish line.")
        if stats.streak > 7:
            hints.append("Acknowledge their impressive streak of over a week!")
        if stats.milestone_label:
            hints.append(f"They just reached the milestone \"{stats.milestone_label}\".")

        hint_lines = "\n".join(f"- {hint}" for hint in hints)

        return f"""Generate a short, {tone.value}-toned hydration reminder notification for {user_name}.

Current progress: {stats.current_ml}ml / {stats.goal_ml}ml ({stats.progress_percent}%)
Current streak: {stats.streak} days
Reminder purpose: {CATEGORY_PROMPTS[category]}

Requirements:
- Maximum {max_length} characters
- Match the {tone.value} tone exactly
- End with a clear call to action to drink now
- Use 1-2 water related emoji at most
- Do NOT use markdown or quotes

Context:
{hint_lines}

Generate ONE message now:"""

    def fallback_message(self, category: NotificationCategory, tone: Tone, stats: MessageStats, max_length: int) -> str:
        candidates = FALLBACK_MESSAGES.get(tone, {}).get(category) \
            or FALLBACK_MESSAGES[DEFAULT_TONE][category]
        template = self.rng.choice(candidates)
        values = stats.model_dump()
        values['milestone_label'] = stats.milestone_label or "today's target"
        return _truncate(template.format(**values), max_length)

    async def compose(
        self,
        category: NotificationCategory,
        tone: Tone,
        stats: MessageStats,
        max_length: int = PUSH_MAX_LENGTH
    ) -> str:
        """Generated text when available, otherwise a static fallback. Never raises."""
        if self.generator is None:
            return self.fallback_message(category, tone, stats, max_length)

        prompt = self.build_prompt(category, tone, stats, max_length)
        try:
            text = await asyncio.wait_for(
                self.generator.generate_text(prompt, max_output_length=max_length, temperature=0.8),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            print(f"⚠️ Text generation timed out after {self.timeout}s, using fallback")
            text = ""
        except Exception as e:
            print(f"❌ Text generation error, using fallback: {e}")
            text = ""

        if not text or not text.strip():
            return self.fallback_message(category, tone, stats, max_length)

        return _truncate(text.strip(), max_length)

NOTIFICATION_TITLES: Dict[NotificationCategory, str] = {
    NotificationCategory.SIP: "Time for a Sip! 💧",
    NotificationCategory.GLASS: "Glass Check! 🥛",
    NotificationCategory.WALK: "Refill Walk! 🚶",
    NotificationCategory.DRINK: "Time to Hydrate! 💧",
    NotificationCategory.HERBAL_TEA: "Tea Time! 🍵",
    NotificationCategory.MILESTONE: "Milestone Reached! 🏆",
    NotificationCategory.STREAK: "Keep Your Streak! 🔥",
}

def get_notification_title(category: NotificationCategory) -> str:
    return NOTIFICATION_TITLES.get(category, "Water4WeightLoss")
