"""Seed Data — reference questions, frameworks and Kohlberg stages for an empty knowledge base.

Invariants:
    - Question ids are stable ("q-<stage>-<n>") so re-seeding is idempotent
    - Three questions per stage, six stages, five frameworks
    - Related-question links: honesty/rules questions link to each other, then
      self-interest/reciprocity questions link to each other (the second cluster
      replaces the first for a question in both)
"""

from goodfaith.core.domain_types import DEFAULT_REQUIRED_ANSWERS
from goodfaith.core.graph_model import Framework, Question, Stage

_QUESTIONS: tuple[tuple[int, str, tuple[str, ...]], ...] = (
    # Stage 1: Punishment-Obedience
    (1, "If you could take something valuable without anyone ever finding out, "
        "would you do it? Why or why not?",
     ("honesty", "punishment", "authority")),
    (1, "If a rule exists but no one enforces it, should you still follow it?",
     ("rules", "authority", "obedience")),
    (1, "Should you always do what your parents or teachers tell you to do?",
     ("authority", "obedience", "punishment")),
    # Stage 2: Instrumental Exchange
    (2, "If someone does you a favor, should you always do one back? Why?",
     ("fairness", "reciprocity", "self-interest")),
    (2, "Is it ever okay to break a promise if keeping it would hurt you?",
     ("promises", "self-interest", "fairness")),
    (2, "Would you help someone if you knew they would never help you back?",
     ("self-interest", "reciprocity", "fairness")),
    # Stage 3: Interpersonal Conformity
    (3, "Would you do something you think is wrong to avoid disappointing your "
        "friends or family?",
     ("relationships", "approval", "social norms")),
    (3, "Is it more important to be seen as a good person or to actually be a "
        "good person?",
     ("approval", "social norms", "identity")),
    (3, "If everyone around you is doing something harmful, would you join in "
        "or stand apart?",
     ("social norms", "approval", "conformity")),
    # Stage 4: Social Order
    (4, "If a law exists that you believe is deeply unfair, should people still "
        "follow it? What determines when breaking a law might be justified?",
     ("law", "social order", "justice", "civil disobedience")),
    (4, "Do you think the same rules should apply to everyone in society, "
        "regardless of their circumstances?",
     ("equality", "social order", "justice")),
    (4, "Is it more important for a society to protect individual freedoms or "
        "to ensure the greater good?",
     ("social order", "individual rights", "collective good")),
    # Stage 5: Social Contract
    (5, "Should people have the right to do things that harm themselves but not "
        "others?",
     ("autonomy", "harm principle", "rights")),
    (5, "What obligations do people in wealthy countries have toward those "
        "living in poverty elsewhere?",
     ("global justice", "social contract", "rights", "obligations")),
    (5, "How should we balance the economic needs of today with environmental "
        "concerns for future generations?",
     ("intergenerational justice", "sustainability", "rights", "future people")),
    # Stage 6: Universal Principles
    (6, "Is there anything that is absolutely wrong, regardless of circumstances "
        "or cultural beliefs?",
     ("universality", "moral absolutism", "relativity")),
    (6, "Should we prioritize the wellbeing of people living today or future "
        "generations who don't yet exist?",
     ("intergenerational justice", "future people", "universality")),
    (6, "What makes a human life valuable, and do all humans have equal moral "
        "worth?",
     ("human dignity", "equality", "personhood", "universality")),
)

_RELATED_CLUSTERS: tuple[frozenset[str], ...] = (
    frozenset({"honesty", "rules"}),
    frozenset({"self-interest", "reciprocity"}),
)


def seed_questions() -> list[Question]:
    counters: dict[int, int] = {}
    rows: list[tuple[str, int, str, tuple[str, ...]]] = []
    for stage, text, tags in _QUESTIONS:
        counters[stage] = counters.get(stage, 0) + 1
        rows.append((f"q-{stage}-{counters[stage]}", stage, text, tags))

    related: dict[str, list[str]] = {}
    for qid, _, _, tags in rows:
        for cluster in _RELATED_CLUSTERS:
            if cluster.intersection(tags):
                related[qid] = [
                    other for other, _, _, other_tags in rows
                    if other != qid and cluster.intersection(other_tags)
                ]

    return [
        Question(
            id=qid, text=text, stage=stage, tags=list(tags),
            related_question_ids=related.get(qid, []),
        )
        for qid, stage, text, tags in rows
    ]


def seed_frameworks() -> list[Framework]:
    return [
        Framework(
            id="deontological",
            name="Deontological Ethics",
            description="Focuses on the rightness or wrongness of actions themselves "
                        "rather than the consequences.",
            principles=["Moral duty", "Universal rules", "Categorical imperative",
                        "Respect for persons"],
            key_thinkers=["Immanuel Kant", "W.D. Ross", "Christine Korsgaard"],
        ),
        Framework(
            id="utilitarian",
            name="Utilitarian Ethics",
            description="Judges actions based on their outcomes and consequences, "
                        "seeking to maximize overall well-being.",
            principles=["Greatest happiness principle", "Consequentialism",
                        "Impartiality", "Welfare maximization"],
            key_thinkers=["Jeremy Bentham", "John Stuart Mill", "Peter Singer"],
        ),
        Framework(
            id="virtueEthics",
            name="Virtue Ethics",
            description="Emphasizes the role of character and virtues in moral "
                        "philosophy rather than rules or consequences.",
            principles=["Character development", "Eudaimonia", "Golden mean",
                        "Practical wisdom"],
            key_thinkers=["Aristotle", "Alasdair MacIntyre", "Martha Nussbaum"],
        ),
        Framework(
            id="careEthics",
            name="Care Ethics",
            description="Emphasizes the importance of response to the needs of "
                        "others, particularly those who are vulnerable.",
            principles=["Empathy", "Relationships", "Contextual thinking",
                        "Interdependence"],
            key_thinkers=["Carol Gilligan", "Nel Noddings", "Virginia Held"],
        ),
        Framework(
            id="contractarianism",
            name="Social Contract Theory",
            description="Bases morality on agreement among people for mutual "
                        "benefit in society.",
            principles=["Mutual agreement", "Fairness", "Justice as fairness",
                        "Veil of ignorance"],
            key_thinkers=["Thomas Hobbes", "John Rawls", "T.M. Scanlon"],
        ),
    ]


def seed_stages(required_answers: int = DEFAULT_REQUIRED_ANSWERS) -> list[Stage]:
    stages = [
        Stage(
            number=1,
            name="Punishment-Obedience Orientation",
            description="In this stage, individuals focus on the direct consequences "
                        "of their actions to themselves.",
            reasoning="What is right is what avoids punishment or gains reward. "
                      "Authority figures determine right and wrong.",
            example_prompts=["Should you steal food to avoid starving?",
                             "Is it right to lie to avoid punishment?"],
        ),
        Stage(
            number=2,
            name="Instrumental Exchange Orientation",
            description="In this stage, individuals focus on what's fair in terms "
                        "of concrete exchange.",
            reasoning="What is right is what serves one's own interests but also "
                      "allows for equal exchange with others.",
            example_prompts=["Should you help someone if they promise to help you later?",
                             "Is it fair to share resources equally?"],
        ),
        Stage(
            number=3,
            name="Interpersonal Conformity Orientation",
            description="In this stage, individuals focus on living up to social "
                        "expectations and roles.",
            reasoning="What is right is what gains the approval of others and "
                      "maintains relationships.",
            example_prompts=["Should you keep a promise to a friend even if it's costly?",
                             "Is it right to follow group norms to maintain harmony?"],
        ),
        Stage(
            number=4,
            name="Social Order Orientation",
            description="In this stage, individuals focus on maintaining the social "
                        "order and following social rules.",
            reasoning="What is right is what contributes to society, upholds law and "
                      "order, and fulfills one's duty.",
            example_prompts=["Should you follow an unjust law?",
                             "Is it right to report a crime even if it harms someone "
                             "you know?"],
        ),
        Stage(
            number=5,
            name="Social Contract Orientation",
            description="In this stage, individuals recognize the relative nature of "
                        "rules and values but still emphasize basic rights and "
                        "democratic processes.",
            reasoning="What is right is what protects rights and is agreed upon by "
                      "society through fair procedures.",
            example_prompts=["Should civil disobedience be allowed to change laws?",
                             "How should conflicting rights be balanced?"],
        ),
        Stage(
            number=6,
            name="Universal Ethical Principles Orientation",
            description="In this stage, individuals follow self-chosen ethical "
                        "principles that are comprehensive, universal, and consistent.",
            reasoning="What is right is determined by abstract, universal principles "
                      "that transcend specific societies and situations.",
            example_prompts=["Should human rights be prioritized over national security?",
                             "Is it right to break a promise to prevent greater harm?"],
        ),
    ]
    if required_answers == DEFAULT_REQUIRED_ANSWERS:
        return stages
    return [s.model_copy(update={"required_answers": required_answers}) for s in stages]
