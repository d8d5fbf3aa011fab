"""Deal lookups used as the data source for memo field inference"""
from typing import Dict, List

from config.database import get_supabase

DEAL_STAGES = ['lead', 'application', 'underwriting', 'approved', 'funded', 'closed', 'declined']

def list_deals(user_id: str, stage: str = None) -> List[Dict]:
    """List the user's deals, most recently updated first"""
    supabase = get_supabase()
    query = supabase.table('deals').select('*').eq('user_id', user_id)
    if stage:
        if stage not in DEAL_STAGES:
            raise ValueError(f"Invalid stage. Must be one of: {', '.join(DEAL_STAGES)}")
        query = query.eq('stage', stage)
    result = query.order('updated_at', desc=True).execute()
    return result.data if result.data else []

def get_deal(user_id: str, deal_id: str) -> Dict:
    """Get a single deal"""
    supabase = get_supabase()
    result = supabase.table('deals').select('*').eq('id', deal_id).eq('user_id', user_id).execute()
    if not result.data:
        raise ValueError("Deal not found")
    return result.data[0]
