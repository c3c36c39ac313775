from __future__ import annotations

import re
from typing import Mapping

PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")

JSON_INSTRUCTION_SUFFIX = (
    "\n\nIMPORTANT: Répondez UNIQUEMENT avec un objet JSON valide, sans texte avant ou après. "
    "Utilisez uniquement des guillemets doubles pour les chaînes. "
    "Ne pas utiliser d'accents ou de caractères spéciaux dans les clés JSON."
)


def placeholders(template: str) -> frozenset[str]:
    """Return the placeholder names declared in ``template``."""
    return frozenset(PLACEHOLDER_PATTERN.findall(template or ""))


def compile_prompt(
    template: str, bundle: Mapping[str, str], *, expects_json: bool = False
) -> str:
    """Substitute every ``{name}`` in one pass; unknown names become ``""``.

    Inserted values are never scanned again, so a value containing ``{...}``
    ends up in the output verbatim.
    """
    compiled = PLACEHOLDER_PATTERN.sub(
        lambda m: str(bundle.get(m.group(1)) or ""), template or ""
    )
    if expects_json:
        compiled = f"{compiled}{JSON_INSTRUCTION_SUFFIX}"
    return compiled


class Prompts:
    """Centralized prompt templates for AI requests.

    ``DEFAULT_PROMPTS`` holds the templates users may override from their
    settings; the class attributes are fixed per feature.
    """

    FUNDAMENTAL_ANALYSIS = (
        "En tant que day trader forex focalisé sur les news, analysez les actualités pour identifier les opportunités de trading immédiates.\n\n"
        "Contexte des actualités :\n"
        "{newsContext}\n\n"
        "Instructions d'analyse :\n"
        "1. Identifiez les actualités à fort potentiel de volatilité :\n"
        "   - Breaking news\n"
        "   - Déclarations surprises\n"
        "   - Données économiques inattendues\n"
        "   - Changements politiques majeurs\n\n"
        "2. Pour chaque actualité importante :\n"
        "   - Impact immédiat sur les devises (0-2h)\n"
        "   - Réaction probable du marché\n"
        "   - Paires de devises les plus sensibles\n"
        "   - Niveau de volatilité attendu\n\n"
        "3. Hiérarchisez les opportunités :\n"
        "   - Classement par potentiel de mouvement\n"
        "   - Timing optimal d'entrée\n"
        "   - Durée probable de l'impact\n"
        "   - Risques spécifiques à surveiller\n\n"
        "Format : Réponse structurée en texte, focalisée sur les opportunités de trading intraday."
    )

    TRADING_SIGNALS = (
        "En tant que scalpeur news, générez des signaux de trading basés sur l'actualité immédiate.\n\n"
        "Données de marché actuelles :\n"
        "{marketContext}\n\n"
        "Actualités récentes :\n"
        "{newsContext}\n\n"
        "Instructions :\n"
        "1. Analysez uniquement les news avec impact immédiat :\n"
        "   - Breaking news\n"
        "   - Surprises de marché\n"
        "   - Réactions en cours\n"
        "   - Mouvements techniques significatifs\n\n"
        "2. Pour chaque opportunité :\n"
        "   - Paire de devise concernée\n"
        "   - Direction probable\n"
        "   - Timing d'entrée optimal\n"
        "   - Durée estimée du mouvement\n"
        "   - Niveau de volatilité attendu\n\n"
        "Format JSON strict :\n"
        '{"signals": [{"symbol": "EUR/USD", "direction": "buy" | "sell", "timing": "string", '
        '"volatility": "high" | "medium" | "low", "duration": "string", '
        '"analysis": "string (en français, 300 caractères max)"}]}'
    )

    AI_INSIGHTS = (
        "En tant que day trader spécialisé dans le trading de news, répondez à la question en analysant l'impact immédiat des actualités sur le marché forex.\n\n"
        "Question : {question}\n\n"
        "Données fondamentales :\n"
        "- Actualités récentes : {newsContext}\n"
        "- Données de marché : {marketContext}\n\n"
        "Instructions d'analyse :\n"
        "1. Évaluez les actualités par ordre d'importance\n"
        "2. Pour chaque actualité significative : impact immédiat, durée probable, volatilité attendue, risques\n"
        "3. Identifiez les opportunités : timing, paires les plus réactives, direction probable\n"
        "4. Concluez : meilleure opportunité immédiate, timing d'entrée, risques principaux\n\n"
        "En l'absence de news significatives, indiquez clairement qu'il est préférable d'attendre de meilleures opportunités."
    )

    MASCOT = (
        "En tant qu'assistant trading spécialisé dans l'analyse fondamentale, concentrez-vous uniquement sur les actualités à fort impact.\n\n"
        "Actualités récentes :\n"
        "{newsContext}\n\n"
        "Événements économiques :\n"
        "{calendarContext}\n\n"
        "Instructions :\n"
        "1. Analysez UNIQUEMENT les actualités à fort impact, les surprises économiques majeures, "
        "les déclarations des banques centrales et les événements géopolitiques majeurs.\n"
        "2. Si une actualité à fort impact est détectée : importance, devises impactées, direction probable, durée.\n"
        "3. Sinon, vérifiez les actualités à impact moyen ; si rien de significatif, recommandez d'attendre.\n\n"
        "Format : Réponse très courte (2-3 phrases maximum) focalisée uniquement sur l'actualité la plus importante.\n"
        "Ne jamais fournir de niveaux de prix spécifiques."
    )

    SENTIMENT = (
        "En tant qu'analyste de sentiment de marché forex, analysez les actualités récentes pour déterminer le sentiment actuel sur chaque paire de devises.\n\n"
        "Données de marché actuelles :\n"
        "{marketContext}\n\n"
        "Actualités récentes :\n"
        "{newsContext}\n\n"
        "Pour chaque paire de devises :\n"
        "1. Évaluez uniquement les actualités qui impactent directement la paire\n"
        "2. Déterminez le sentiment global (bullish/bearish/neutral)\n"
        "3. Attribuez un score de -100 à +100\n"
        "4. Évaluez le niveau de confiance (0-100%)\n"
        "5. Fournissez une brève justification\n\n"
        "Format de réponse JSON :\n"
        '{"analysis": [{"pair": "EUR/USD", "sentiment": "bullish" | "bearish" | "neutral", '
        '"score": number (-100 à +100), "confidence": number (0-100), '
        '"reasoning": "string (brève explication)"}]}'
    )

    VOLATILITY = (
        "Analysez la volatilité intraday des paires forex majeures.\n\n"
        "Marché actuel:\n"
        "{marketContext}\n\n"
        "Actualités:\n"
        "{newsContext}\n\n"
        "Répondez UNIQUEMENT avec un JSON valide de cette structure:\n"
        '{"analysis": [{"pair": "EUR/USD", "volatility": "high" | "medium" | "low", '
        '"score": number (0-100), "triggers": ["raison courte 1", "raison courte 2"], '
        '"prediction": "prédiction courte sur les prochaines heures"}]}\n\n'
        "Règles strictes:\n"
        "- Uniquement les paires EUR/USD, GBP/USD, USD/JPY\n"
        "- Analyse de la volatilité sur les prochaines 4-8 heures\n"
        "- volatility: high >50 pips, medium 20-50 pips, low <20 pips\n"
        "- score: 0 (très calme) à 100 (très volatile)\n"
        "- triggers: 2-3 catalyseurs immédiats, 50 caractères max chacun\n"
        "- prediction: max 100 caractères\n"
        "- Texte en français uniquement"
    )

    CENTRAL_BANK = (
        "Analysez la position actuelle des banques centrales.\n\n"
        "Actualités:\n"
        "{newsContext}\n\n"
        "Format JSON strict:\n"
        '{"banks": [{"name": "BCE|FED|BOE", "stance": "Hawkish|Dovish|Neutre", '
        '"summary": "1 phrase max", "trend": "up|down|stable"}]}'
    )

    COMMODITIES = (
        "Analysez le sentiment sur les matières premières principales.\n\n"
        "Actualités:\n"
        "{newsContext}\n\n"
        "Répondez avec un JSON de cette structure exacte:\n"
        '{"commodities": [{"symbol": "XAU" | "XAG" | "OIL" | "COPPER", '
        '"name": "Or" | "Argent" | "Pétrole" | "Cuivre", '
        '"sentiment": "bullish" | "bearish" | "neutral", "impact": "high" | "medium" | "low", '
        '"price": "description tendance prix", "trend": "description tendance technique", '
        '"catalysts": ["raison 1", "raison 2"], "risks": ["risque 1", "risque 2"]}]}\n\n'
        "Règles strictes:\n"
        "1. Maximum 4 matières premières\n"
        "2. price et trend: max 50 caractères\n"
        "3. catalysts et risks: 2-3 éléments courts\n"
        "4. Texte en français uniquement\n"
        "5. Pas de prix spécifiques"
    )

    SESSION = (
        "Analysez la session de trading {session} en cours.\n\n"
        "Actualités récentes:\n"
        "{newsContext}\n\n"
        "Répondez avec un JSON de cette structure:\n"
        '{"analysis": {"pairs": ["EUR/USD", "GBP/USD"], "activity": "haute" | "moyenne" | "basse", '
        '"volatility": "haute" | "moyenne" | "basse", "opportunities": [{"pair": "EUR/USD", '
        '"type": "breakout" | "range" | "trend", "description": "description courte"}]}}'
    )

    PAIR = (
        "Analysez la paire {pair} pendant la session actuelle.\n\n"
        "Actualités récentes:\n"
        "{newsContext}\n\n"
        "Répondez avec un JSON de cette structure:\n"
        '{"analysis": {"sentiment": "bullish" | "bearish" | "neutral", '
        '"volatility": "haute" | "moyenne" | "basse", "activity": "haute" | "moyenne" | "basse", '
        '"catalysts": ["raison 1", "raison 2"], "risks": ["risque 1", "risque 2"]}}'
    )


DEFAULT_PROMPTS: dict[str, str] = {
    "fundamental_analysis": Prompts.FUNDAMENTAL_ANALYSIS,
    "trading_signals": Prompts.TRADING_SIGNALS,
    "ai_insights": Prompts.AI_INSIGHTS,
    "mascot": Prompts.MASCOT,
}


__all__ = [
    "DEFAULT_PROMPTS",
    "JSON_INSTRUCTION_SUFFIX",
    "PLACEHOLDER_PATTERN",
    "Prompts",
    "compile_prompt",
    "placeholders",
]
