"""Sound change rulesets.

"name" is the name of the ruleset.
    These should be unique.

"rules" contains a list of sound change rules, applied in order.
    Each rule is written "from > to / before_after", where
    "from" is a regex pattern for the sound(s) to change,
    "to" is the replacement, or "Ø" to delete the match,
    and the optional environment "before_after" gives the context
    that must precede and follow the match.
    An environment side that is exactly "V" matches any vowel,
    and one that is exactly "C" matches any other character.

Note that the rules of all rulesets are applied in one sequence,
so the ordering of both rulesets and rules may matter for the result.
"""


lenition = {
    "name": "lenition",
    "rules": [
        "p > b / V_V",
        "t > d / V_V",
        "k > g / V_V",
    ]
}

h_loss = {
    "name": "h_loss",
    "rules": [
        "h > Ø / V_V",
    ]
}

nasal_assimilation = {
    "name": "nasal_assimilation",
    "rules": [
        "n > m / _[pbm]",
    ]
}
