from signal_engine.options import generate_options_signals, overall_sentiment


def test_neutral_metrics_produce_no_signals(options_factory):
    context = options_factory()

    assert context.signals == ()
    assert context.sentiment.sentiment == "neutral"
    assert context.sentiment.strength == "weak"


def test_expensive_iv_leads_signal_list(options_factory):
    context = options_factory(iv_percentile=90.0)
    signals = generate_options_signals(context)

    assert signals[0].direction == "SELL_PREMIUM"
    assert signals[0].confidence == 85
    assert context.signals == tuple(signals)


def test_asset_specific_signals(options_factory):
    btc = options_factory("BTC/USD", iv_percentile=90.0)
    eur = options_factory("EUR/USD", iv_percentile=10.0)
    gold = options_factory("XAU/USD", iv_percentile=40.0, vix=27.0)

    assert any(s.direction == "IRON_CONDOR" for s in btc.signals)
    assert any(s.direction == "STRADDLE" for s in eur.signals)
    assert any(s.type == "commodity" and s.direction == "BULLISH" for s in gold.signals)


def test_term_structure_inversion_is_bearish(options_factory):
    context = options_factory(term_structure=-0.06)

    assert [(s.direction, s.confidence) for s in context.signals] == [("BEARISH", 80)]


def test_sentiment_strength_tracks_factor_gap(options_factory):
    strong = overall_sentiment(options_factory(pcr=1.3, vix=32.0, trin=1.3))
    moderate = overall_sentiment(options_factory(iv_percentile=90.0, pcr=0.6, vix=20.0))
    narrow = overall_sentiment(options_factory(pcr=1.3, vix=12.0, trin=1.3))

    assert (strong.sentiment, strong.strength, strong.bullish_factors) == ("bullish", "strong", 3)
    assert (moderate.sentiment, moderate.strength) == ("bearish", "moderate")
    assert (narrow.sentiment, narrow.strength) == ("neutral", "weak")
    assert overall_sentiment(None).sentiment == "neutral"
