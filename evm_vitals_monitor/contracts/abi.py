"""
合约 ABI 片段

只包含监控器实际调用的只读方法
"""


def _view(name, inputs=None, output='uint256'):
    return {
        'name': name,
        'type': 'function',
        'stateMutability': 'view',
        'inputs': [{'name': arg_name, 'type': arg_type} for arg_name, arg_type in (inputs or [])],
        'outputs': [{'name': '', 'type': output}],
    }


ABI_ERC20 = [
    _view('name', output='string'),
    _view('symbol', output='string'),
    _view('decimals', output='uint8'),
    _view('totalSupply'),
    _view('balanceOf', inputs=[('_owner', 'address')]),
]

ABI_GTOKEN = ABI_ERC20 + [
    _view('stakesToken', output='address'),
    _view('reserveToken', output='address'),
    _view('totalReserve'),
]

ABI_GCTOKEN = ABI_GTOKEN + [
    _view('underlyingToken', output='address'),
    _view('lendingReserveUnderlying'),
    _view('borrowingReserveUnderlying'),
]
