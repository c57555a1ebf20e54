"""
Tests for paper_engine/live/card_analysis.py
"""

from paper_engine.live.card_analysis import analysis_fields, confidence_score, volume_assessment


class TestCardAnalysis:
    """Tests for per-card analysis fields."""

    def test_confidence_score(self, snapshot):
        ind = snapshot(rsi=28, sma20=101, sma50=105, volume_ratio=1.5)
        # 50 + RSI extreme 15 + volume 10 + near SMA20 10
        assert confidence_score(ind) == 85

    def test_confidence_capped(self, snapshot):
        ind = snapshot(rsi=20, sma20=100.5, sma50=90, volume_ratio=3.0)
        assert confidence_score(ind) == 100

    def test_volume_assessment(self):
        assert volume_assessment(None) == "low"
        assert volume_assessment(0.5) == "low"
        assert volume_assessment(1.0) == "normal"
        assert volume_assessment(1.5) == "high"

    def test_fields_for_oversold_card(self, snapshot):
        fields = analysis_fields(snapshot(rsi=28, sma20=101, sma50=105, volume_ratio=1.5))
        headline, observations, action = fields["notes"].split("\n")
        assert fields["rsi_value"] == 28.0
        assert fields["volume_assessment"] == "high"
        assert "BTC oversold" in headline
        assert "Above-average volume" in observations
        assert action.startswith("🎯 Entry zone")

    def test_no_fields_without_rsi(self, snapshot):
        assert analysis_fields(None) is None
        assert analysis_fields(snapshot()) is None
