"""Stopword lists per language.

Lists are keyed by ISO 639-1 code. Lookups compare against case-folded
words, so every entry is lower case.
"""

from __future__ import annotations

DEFAULT_LANGUAGE = "en"

_ENGLISH = frozenset(
    """
    a about above after again against all am an and any are as at be because
    been before being below between both but by can could did do does doing
    down during each few for from further had has have having he her here hers
    herself him himself his how i if in into is it its itself just me more most
    my myself no nor not now of off on once only or other our ours ourselves
    out over own same she should so some such than that the their theirs them
    themselves then there these they this those through to too under until up
    very was we were what when where which while who whom why will with would
    you your yours yourself yourselves
    """.split()
)

_PORTUGUESE = frozenset(
    """
    a ao aos as até com como da das de dela delas dele deles depois do dos e
    ela elas ele eles em entre era eram essa essas esse esses esta estas este
    estes eu foi for foram há isso isto já lhe lhes mais mas me mesmo meu meus
    minha minhas muito na nas nem no nos nossa nossas nosso nossos num numa o
    os ou para pela pelas pelo pelos por qual quando que quem se sem ser seu
    seus só sua suas também te tem tu tua tuas um uma você vocês vos
    """.split()
)

_SPANISH = frozenset(
    """
    a al algo algunas algunos ante antes como con contra cual cuando de del
    desde donde durante e el ella ellas ellos en entre era eras es esa esas ese
    eso esos esta estas este esto estos fue fueron ha hay la las le les lo los
    mas me mi mis mucho muy nada ni no nos nosotros o os otra otro para pero
    poco por porque que quien se sea ser si sin sobre su sus también te tiene
    tu tus un una uno unos y ya yo
    """.split()
)

_FRENCH = frozenset(
    """
    au aux avec ce ces dans de des du elle elles en est et eux il ils je la le
    les leur leurs lui ma mais me même mes moi mon ne nos notre nous on ou par
    pas pour qu que qui sa se ses son sur ta te tes toi ton tu un une vos votre
    vous y été était être
    """.split()
)

_GERMAN = frozenset(
    """
    aber alle als also am an auch auf aus bei bin bis bist da damit dann das
    dass dein deine dem den der des dich die dir doch du durch ein eine einem
    einen einer eines er es für hat hatte ich ihm ihn ihr ihre im in ist ja
    kann kein keine mein meine mich mir mit nach nicht noch nun nur ob oder
    sein seine sich sie sind so über um und uns unser unter vom von vor war
    waren was wenn wer wie wir wird zu zum zur
    """.split()
)

STOPWORDS: dict[str, frozenset[str]] = {
    "en": _ENGLISH,
    "pt": _PORTUGUESE,
    "es": _SPANISH,
    "fr": _FRENCH,
    "de": _GERMAN,
}


def get_stopwords(language: str) -> frozenset[str] | None:
    """Stopwords for ``language``, or None when the language is not supported."""
    return STOPWORDS.get(language.lower())


def is_supported(language: str) -> bool:
    return language.lower() in STOPWORDS
