"""
Tests for config.py and wallet.py - layered configuration and key handling.
"""
import json

import base58
import pytest
from unittest.mock import patch
from solders.keypair import Keypair

from atomic_arb.config import SOL_MINT, USDC_MINT, BotConfig
from atomic_arb.errors import ConfigError
from atomic_arb.wallet import WalletHandle


CONFIG_ENV_VARS = [
    'RPC_URL', 'FALLBACK_RPC_URL', 'JUPITER_API_URL', 'BASE_MINT', 'QUOTE_MINT',
    'INPUT_AMOUNT', 'MIN_PROFIT', 'SLIPPAGE_BPS', 'COMPUTE_UNIT_PRICE_MICRO_LAMPORTS',
    'FEE_ESTIMATE_SOL', 'MAX_RETRIES', 'CYCLE_DELAY_SECONDS', 'MAX_CONSECUTIVE_FAILURES',
    'COOLDOWN_SECONDS', 'TELEGRAM_BOT_TOKEN', 'TELEGRAM_CHAT_ID',
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def load(tmp_path, clean_env):
    """Load BotConfig from an optional config.json in tmp_path, skipping .env."""
    def _load(file_config=None):
        config_path = tmp_path / 'config.json'
        if file_config is not None:
            config_path.write_text(json.dumps(file_config))
        with patch('atomic_arb.config.dotenv.load_dotenv'):
            return BotConfig.load(env_path=tmp_path / '.env', config_path=config_path)
    return _load


class TestBotConfig:
    
    def test_defaults(self, load):
        config = load()
        
        assert config.base_mint == USDC_MINT
        assert config.quote_mint == SOL_MINT
        assert config.input_amount == 10_000_000
        assert config.min_profit == 1200
        assert config.slippage_bps == 1
        assert config.max_retries == 3
        assert config.cycle_delay_seconds == 5.0
        assert config.max_consecutive_failures == 5
        assert config.cooldown_seconds == 30.0
        assert config.telegram_bot_token is None
    
    def test_config_file_overrides_defaults(self, load):
        config = load({
            "arbitrage": {"input_amount": 5_000_000, "min_profit": 800},
            "loop": {"cooldown_seconds": 60}
        })
        
        assert config.input_amount == 5_000_000
        assert config.min_profit == 800
        assert config.cooldown_seconds == 60.0
    
    def test_env_overrides_config_file(self, load, clean_env):
        clean_env.setenv('MIN_PROFIT', '2500')
        clean_env.setenv('RPC_URL', 'https://rpc.example.com')
        
        config = load({"arbitrage": {"min_profit": 800}})
        
        assert config.min_profit == 2500
        assert config.rpc_url == 'https://rpc.example.com'
    
    def test_blank_env_falls_back_to_file(self, load, clean_env):
        clean_env.setenv('MIN_PROFIT', '  ')
        
        config = load({"arbitrage": {"min_profit": 800}})
        
        assert config.min_profit == 800
    
    def test_unparseable_value_raises(self, load, clean_env):
        clean_env.setenv('INPUT_AMOUNT', 'ten')
        
        with pytest.raises(ConfigError, match="INPUT_AMOUNT"):
            load()
    
    @pytest.mark.parametrize("env,value", [
        ('INPUT_AMOUNT', '0'),
        ('MIN_PROFIT', '-1'),
        ('MAX_RETRIES', '0'),
        ('SLIPPAGE_BPS', '-5'),
        ('MAX_CONSECUTIVE_FAILURES', '0'),
        ('QUOTE_MINT', USDC_MINT),
    ])
    def test_out_of_range_values_raise(self, load, clean_env, env, value):
        clean_env.setenv(env, value)
        
        with pytest.raises(ConfigError):
            load()
    
    def test_invalid_json_raises(self, tmp_path, clean_env):
        config_path = tmp_path / 'config.json'
        config_path.write_text("{not json")
        
        with patch('atomic_arb.config.dotenv.load_dotenv'):
            with pytest.raises(ConfigError, match="Invalid JSON"):
                BotConfig.load(env_path=tmp_path / '.env', config_path=config_path)
    
    def test_dotenv_loaded_when_present(self, tmp_path, clean_env):
        env_path = tmp_path / '.env'
        env_path.write_text("")
        
        with patch('atomic_arb.config.dotenv.load_dotenv') as mock_load_dotenv:
            BotConfig.load(env_path=env_path, config_path=tmp_path / 'config.json')
        
        mock_load_dotenv.assert_called_once_with(env_path)
    
    def test_repr_masks_bot_token(self, load, clean_env):
        clean_env.setenv('TELEGRAM_BOT_TOKEN', '123456:super-secret')
        clean_env.setenv('TELEGRAM_CHAT_ID', '42')
        
        config = load()
        
        assert config.telegram_bot_token == '123456:super-secret'
        assert 'super-secret' not in repr(config)


class TestWalletHandle:
    
    @pytest.fixture
    def keypair(self):
        return Keypair()
    
    @pytest.fixture
    def private_key(self, keypair):
        return base58.b58encode(bytes(keypair)).decode()
    
    def test_open_and_close(self, keypair, private_key):
        wallet = WalletHandle(private_key)
        assert not wallet.is_open
        
        wallet.open()
        assert wallet.is_open
        assert wallet.pubkey == keypair.pubkey()
        
        wallet.close()
        assert not wallet.is_open
        with pytest.raises(ConfigError, match="not open"):
            _ = wallet.keypair
    
    def test_context_manager_releases_key(self, keypair, private_key):
        with WalletHandle(private_key) as wallet:
            assert wallet.keypair.pubkey() == keypair.pubkey()
        
        assert not wallet.is_open
        with pytest.raises(ConfigError, match="already released"):
            wallet.open()
    
    def test_repr_shows_public_key_only(self, keypair, private_key):
        wallet = WalletHandle(private_key).open()
        
        assert str(keypair.pubkey()) in repr(wallet)
        assert private_key not in repr(wallet)
        wallet.close()
        assert repr(wallet) == "WalletHandle(closed)"
    
    def test_missing_key_raises(self):
        with pytest.raises(ConfigError, match="No wallet private key"):
            WalletHandle("")
    
    def test_from_env(self, monkeypatch, keypair, private_key):
        monkeypatch.setenv('WALLET_PRIVATE_KEY', private_key)
        
        with WalletHandle.from_env() as wallet:
            assert wallet.pubkey == keypair.pubkey()
    
    def test_invalid_key_does_not_echo_key_material(self):
        bad_key = "3yZe7d" * 5
        
        with pytest.raises(ConfigError) as exc_info:
            WalletHandle(bad_key).open()
        
        assert bad_key not in str(exc_info.value)
        assert exc_info.value.__cause__ is None
